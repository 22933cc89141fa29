"""Text segmentation into ordered, offset-tracked chunks.

Three interchangeable strategies turn a document's plain text into a
:class:`~docrag.models.rag.ChunkingResult`:

1. **Recursive** (:meth:`TextChunker.chunk_text`) -- tries a prioritized
   list of separators (paragraph break, line break, sentence terminator,
   space, character) so chunk boundaries fall on the largest natural unit
   that keeps every chunk under ``chunk_size`` characters.  Consecutive
   chunks share up to ``chunk_overlap`` trailing characters.

2. **Chapters** (:meth:`TextChunker.chunk_by_chapters`) -- one chunk per
   "Chapter N" / "Chapitre N" / "Section N" heading, falling back to the
   recursive strategy when the text has fewer than two headings.

3. **Fixed size** (:meth:`TextChunker.chunk_by_fixed_size`) -- a plain
   sliding window, useful for quick tests and uniform corpora.

Every chunk records half-open ``[start_char, end_char)`` offsets into the
source text so search hits can be traced back to their position.
"""

from __future__ import annotations

import re

import structlog
from langchain_text_splitters import RecursiveCharacterTextSplitter

from docrag.models.rag import ChunkingResult, ChunkMetadata, TextChunk
from docrag.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", " ", "")

# A heading either opens a line (optionally indented) or directly follows
# a sentence terminator, so inline prose like "see chapter 3" is skipped.
DEFAULT_CHAPTER_PATTERN = re.compile(
    r"(?:^[ \t]*|(?<=[.!?:]\s))(?:chapter|chapitre|section)\s+\d+",
    re.IGNORECASE | re.MULTILINE,
)


class TextChunker:
    """Splits text into chunks under one of three strategies.

    Parameters
    ----------
    chunk_size:
        Default maximum chunk length in characters for :meth:`chunk_text`.
    chunk_overlap:
        Default number of characters shared by consecutive chunks.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        self._validate_window(chunk_size, chunk_overlap, size_label="chunk_size")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    def chunk_text(
        self,
        text: str,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        separators: list[str] | None = None,
    ) -> ChunkingResult:
        """Split *text* recursively on the separator hierarchy.

        Parameters
        ----------
        text:
            The full text to chunk.
        chunk_size:
            Maximum chunk length; defaults to the instance setting.
        chunk_overlap:
            Characters repeated from the end of one chunk at the start of
            the next; must be smaller than *chunk_size*.
        separators:
            Separator priority list; defaults to paragraph, line, sentence,
            word, character.

        Returns
        -------
        ChunkingResult
            Ordered chunks with offsets.  Empty input yields zero chunks.

        Raises
        ------
        ConfigurationError
            If the size/overlap pair would give a non-positive step.
        """
        size = self._chunk_size if chunk_size is None else chunk_size
        overlap = self._chunk_overlap if chunk_overlap is None else chunk_overlap
        self._validate_window(size, overlap, size_label="chunk_size")

        if not text:
            return ChunkingResult.from_chunks([])

        splitter = RecursiveCharacterTextSplitter(
            chunk_size=size,
            chunk_overlap=overlap,
            separators=list(separators) if separators else list(DEFAULT_SEPARATORS),
            length_function=len,
        )
        pieces = splitter.split_text(text)
        chunks = self._locate_pieces(text, pieces, overlap)

        result = ChunkingResult.from_chunks(chunks)
        logger.info(
            "chunking_complete",
            strategy="standard",
            text_length=len(text),
            num_chunks=result.total_chunks,
            avg_chunk_size=result.average_chunk_size,
            chunk_size=size,
            chunk_overlap=overlap,
        )
        return result

    def chunk_by_chapters(
        self,
        text: str,
        pattern: str | re.Pattern[str] | None = None,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
    ) -> ChunkingResult:
        """Split *text* at chapter headings.

        Each chunk spans from one heading match to the next (end of text
        for the last).  The first chunk starts at offset 0 so any front
        matter stays attached to chapter one; chunk content is the span
        with surrounding whitespace stripped.

        Fewer than two headings means the text has no usable chapter
        structure and :meth:`chunk_text` is used instead, with
        *chunk_size* / *chunk_overlap* passed through.
        """
        regex = self._compile_pattern(pattern)
        matches = list(regex.finditer(text))

        if len(matches) < 2:
            logger.info(
                "chapters_not_found_fallback",
                matches=len(matches),
                text_length=len(text),
            )
            return self.chunk_text(text, chunk_size=chunk_size, chunk_overlap=chunk_overlap)

        boundaries = [0] + [m.start() for m in matches[1:]] + [len(text)]
        chunks: list[TextChunk] = []
        for index, (start, end) in enumerate(zip(boundaries, boundaries[1:])):
            content = text[start:end].strip()
            chunks.append(
                TextChunk(
                    content=content,
                    index=index,
                    metadata=ChunkMetadata(start_char=start, end_char=end, length=len(content)),
                )
            )

        result = ChunkingResult.from_chunks(chunks)
        logger.info(
            "chunking_complete",
            strategy="chapters",
            text_length=len(text),
            num_chunks=result.total_chunks,
            avg_chunk_size=result.average_chunk_size,
        )
        return result

    def chunk_by_fixed_size(self, text: str, size: int = 1000, overlap: int = 0) -> ChunkingResult:
        """Split *text* into windows of *size* characters with step ``size - overlap``.

        The window stops advancing once it reaches the end of the text, so
        the result has ``ceil((len(text) - overlap) / (size - overlap))``
        chunks for texts longer than *size*; the last chunk may be shorter.
        """
        self._validate_window(size, overlap, size_label="size")

        step = size - overlap
        chunks: list[TextChunk] = []
        position = 0
        while position < len(text):
            end = min(position + size, len(text))
            content = text[position:end]
            chunks.append(
                TextChunk(
                    content=content,
                    index=len(chunks),
                    metadata=ChunkMetadata(start_char=position, end_char=end, length=len(content)),
                )
            )
            if end == len(text):
                break
            position += step

        result = ChunkingResult.from_chunks(chunks)
        logger.info(
            "chunking_complete",
            strategy="fixed",
            text_length=len(text),
            num_chunks=result.total_chunks,
            size=size,
            overlap=overlap,
        )
        return result

    @staticmethod
    def preprocess_text(text: str) -> str:
        """Normalize line endings and whitespace.

        ``\\r\\n`` becomes ``\\n``, runs of three or more newlines collapse
        to two, then every whitespace run collapses to a single space and
        the ends are trimmed.  Applying it twice changes nothing.
        """
        text = text.replace("\r\n", "\n")
        text = re.sub(r"\n{3,}", "\n\n", text)
        text = re.sub(r"\s+", " ", text)
        return text.strip()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_window(size: int, overlap: int, size_label: str) -> None:
        if size <= 0:
            raise ConfigurationError(f"{size_label} must be positive, got {size}")
        if overlap < 0:
            raise ConfigurationError(f"overlap must not be negative, got {overlap}")
        if overlap >= size:
            raise ConfigurationError(
                f"overlap ({overlap}) must be smaller than {size_label} ({size})"
            )

    @staticmethod
    def _compile_pattern(pattern: str | re.Pattern[str] | None) -> re.Pattern[str]:
        if pattern is None:
            return DEFAULT_CHAPTER_PATTERN
        if isinstance(pattern, re.Pattern):
            return pattern
        try:
            return re.compile(pattern, re.IGNORECASE | re.MULTILINE)
        except re.error as exc:
            raise ConfigurationError(f"Invalid chapter pattern {pattern!r}: {exc}") from exc

    @staticmethod
    def _locate_pieces(text: str, pieces: list[str], overlap: int) -> list[TextChunk]:
        """Recover source offsets for split pieces.

        The search cursor never moves backward: a piece is looked up
        starting no earlier than ``previous_end - overlap`` and never before
        the previous piece's start, so repeated passages resolve to their
        first occurrence after the cursor.  Two pieces may share a start
        offset when the splitter extends a chunk it has already emitted.
        """
        chunks: list[TextChunk] = []
        prev_start = 0
        prev_end = 0
        for index, content in enumerate(pieces):
            cursor = max(prev_start, prev_end - overlap)
            start = text.find(content, cursor)
            if start == -1:
                start = text.find(content, prev_start)
            if start == -1:
                # Splitter output is always a substring of its input; keep
                # offsets monotonic if that ever stops holding.
                logger.warning("chunk_offset_not_found", index=index, cursor=cursor)
                start = min(cursor, max(len(text) - len(content), prev_start))
            end = start + len(content)
            chunks.append(
                TextChunk(
                    content=content,
                    index=index,
                    metadata=ChunkMetadata(start_char=start, end_char=end, length=len(content)),
                )
            )
            prev_start, prev_end = start, end
        return chunks

"""Unit tests for TextChunker: recursive, chapter and fixed-size strategies."""

from __future__ import annotations

import random

import pytest

from docrag.services.ingestion.chunker import TextChunker
from docrag.utils.errors import ConfigurationError


def _assert_offsets_match(text: str, result) -> None:
    for chunk in result.chunks:
        meta = chunk.metadata
        assert text[meta.start_char : meta.end_char] == chunk.content
        assert meta.length == len(chunk.content)


def _word_text(count: int) -> str:
    return " ".join(f"w{i:03d}" for i in range(count))


# ---------------------------------------------------------------------------
# Recursive strategy
# ---------------------------------------------------------------------------


class TestChunkText:
    def test_empty_text_yields_no_chunks(self) -> None:
        result = TextChunker().chunk_text("")
        assert result.chunks == []
        assert result.total_chunks == 0
        assert result.total_characters == 0
        assert result.average_chunk_size == 0

    def test_short_text_is_single_chunk(self) -> None:
        result = TextChunker().chunk_text("Hello world.")
        assert result.total_chunks == 1
        chunk = result.chunks[0]
        assert chunk.content == "Hello world."
        assert chunk.index == 0
        assert chunk.metadata.start_char == 0
        assert chunk.metadata.end_char == 12

    def test_chunks_respect_size_and_offsets(self, sample_document_text: str) -> None:
        chunker = TextChunker(chunk_size=200, chunk_overlap=40)
        result = chunker.chunk_text(sample_document_text)

        assert result.total_chunks > 1
        assert [c.index for c in result.chunks] == list(range(result.total_chunks))
        for chunk in result.chunks:
            assert 0 < len(chunk.content) <= 200
            assert chunk.metadata.start_char < chunk.metadata.end_char
        _assert_offsets_match(sample_document_text, result)

    def test_start_offsets_never_decrease(self, sample_document_text: str) -> None:
        result = TextChunker(chunk_size=150, chunk_overlap=50).chunk_text(sample_document_text)
        starts = [c.metadata.start_char for c in result.chunks]
        assert starts == sorted(starts)

    def test_extended_piece_keeps_shared_start(self) -> None:
        text = "abc def"
        chunks = TextChunker._locate_pieces(text, ["abc d", "abc de"], overlap=4)

        assert [c.metadata.start_char for c in chunks] == [0, 0]
        assert [c.metadata.end_char for c in chunks] == [5, 6]

    @pytest.mark.parametrize(("size", "overlap"), [(22, 20), (30, 15), (40, 8)])
    def test_offsets_match_on_repetitive_text(self, size: int, overlap: int) -> None:
        rng = random.Random(f"{size}-{overlap}")
        tokens = ["x.", "zz", "bb", "x", ". ", " ", " ", "\n", "\n\n"]
        chunker = TextChunker()
        for _ in range(200):
            text = "".join(rng.choice(tokens) for _ in range(rng.randint(20, 80)))
            result = chunker.chunk_text(text, chunk_size=size, chunk_overlap=overlap)
            _assert_offsets_match(text, result)
            starts = [c.metadata.start_char for c in result.chunks]
            assert starts == sorted(starts)

    def test_consecutive_chunks_overlap(self) -> None:
        text = _word_text(40)
        result = TextChunker().chunk_text(text, chunk_size=50, chunk_overlap=20)

        assert result.total_chunks > 1
        for prev, nxt in zip(result.chunks, result.chunks[1:]):
            assert nxt.metadata.start_char < prev.metadata.end_char
        _assert_offsets_match(text, result)

    def test_zero_overlap_chunks_do_not_overlap(self) -> None:
        text = _word_text(40)
        result = TextChunker().chunk_text(text, chunk_size=50, chunk_overlap=0)
        for prev, nxt in zip(result.chunks, result.chunks[1:]):
            assert nxt.metadata.start_char >= prev.metadata.end_char

    def test_repeated_passages_resolve_in_order(self) -> None:
        text = "\n\n".join(["the same paragraph repeated here"] * 6)
        result = TextChunker().chunk_text(text, chunk_size=40, chunk_overlap=0)

        assert result.total_chunks == 6
        starts = [c.metadata.start_char for c in result.chunks]
        assert starts == [i * 34 for i in range(6)]
        _assert_offsets_match(text, result)

    def test_custom_separators(self) -> None:
        text = "alpha|beta|gamma|delta"
        result = TextChunker().chunk_text(
            text, chunk_size=11, chunk_overlap=0, separators=["|", ""]
        )
        assert result.total_chunks > 1
        _assert_offsets_match(text, result)

    def test_aggregates(self, sample_document_text: str) -> None:
        result = TextChunker(chunk_size=300, chunk_overlap=0).chunk_text(sample_document_text)
        lengths = [c.metadata.length for c in result.chunks]
        assert result.total_characters == sum(lengths)
        assert result.average_chunk_size == round(sum(lengths) / len(lengths))

    @pytest.mark.parametrize(
        ("size", "overlap"),
        [(100, 100), (100, 150), (0, 0), (-5, 0), (100, -1)],
    )
    def test_invalid_window_raises(self, size: int, overlap: int) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker().chunk_text("some text", chunk_size=size, chunk_overlap=overlap)

    def test_invalid_constructor_defaults_raise(self) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker(chunk_size=100, chunk_overlap=100)


# ---------------------------------------------------------------------------
# Chapter strategy
# ---------------------------------------------------------------------------


class TestChunkByChapters:
    def test_inline_headings_after_sentences(self) -> None:
        text = "Chapitre 1 Intro texte. Chapitre 2 Corps texte."
        result = TextChunker().chunk_by_chapters(text)

        assert result.total_chunks == 2
        assert result.chunks[0].content == "Chapitre 1 Intro texte."
        assert result.chunks[1].content == "Chapitre 2 Corps texte."
        assert result.chunks[1].metadata.start_char == 24

    def test_line_headings_and_front_matter(self) -> None:
        text = "Preface words.\nChapter 1\nFirst body.\n\nChapter 2\nSecond body.\nSection 3\nThird."
        result = TextChunker().chunk_by_chapters(text)

        assert result.total_chunks == 3
        assert result.chunks[0].content.startswith("Preface words.")
        assert "Chapter 1" in result.chunks[0].content
        assert result.chunks[1].content.startswith("Chapter 2")
        assert result.chunks[2].content == "Section 3\nThird."

    def test_spans_partition_the_text(self) -> None:
        text = "  CHAPTER 1\nOne.\n  chapter 2\nTwo.\n  Chapter 3\nThree."
        result = TextChunker().chunk_by_chapters(text)

        assert result.total_chunks == 3
        assert result.chunks[0].metadata.start_char == 0
        assert result.chunks[-1].metadata.end_char == len(text)
        for prev, nxt in zip(result.chunks, result.chunks[1:]):
            assert prev.metadata.end_char == nxt.metadata.start_char
        for chunk in result.chunks:
            assert chunk.metadata.length == len(chunk.content)

    def test_inline_mention_is_not_a_heading(self) -> None:
        text = "Chapter 1\nAs shown in chapter 2 later on.\nChapter 2\nDetails."
        result = TextChunker().chunk_by_chapters(text)
        assert result.total_chunks == 2
        assert "chapter 2 later" in result.chunks[0].content

    def test_fewer_than_two_headings_falls_back(self, sample_document_text: str) -> None:
        chunker = TextChunker(chunk_size=200, chunk_overlap=40)
        text = "Chapter 1\n" + sample_document_text

        by_chapters = chunker.chunk_by_chapters(text)
        standard = chunker.chunk_text(text)

        assert by_chapters == standard

    def test_fallback_passes_sizes_through(self) -> None:
        text = "no headings " * 30
        result = TextChunker().chunk_by_chapters(text, chunk_size=50, chunk_overlap=10)
        assert result.total_chunks > 1
        assert all(len(c.content) <= 50 for c in result.chunks)

    def test_custom_pattern(self) -> None:
        text = "Part A\nalpha\nPart B\nbeta"
        result = TextChunker().chunk_by_chapters(text, pattern=r"^Part [A-Z]")
        assert [c.content for c in result.chunks] == ["Part A\nalpha", "Part B\nbeta"]

    def test_invalid_pattern_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker().chunk_by_chapters("Chapter 1", pattern="(unclosed")


# ---------------------------------------------------------------------------
# Fixed-size strategy
# ---------------------------------------------------------------------------


class TestChunkByFixedSize:
    def test_no_overlap(self) -> None:
        text = "a" * 25
        result = TextChunker().chunk_by_fixed_size(text, size=10)

        assert [c.metadata.length for c in result.chunks] == [10, 10, 5]
        assert [c.metadata.start_char for c in result.chunks] == [0, 10, 20]
        assert result.chunks[-1].metadata.end_char == 25

    def test_with_overlap_stops_at_end(self) -> None:
        text = "abcdefghijklmnopqrstuvwxy"  # 25 chars
        result = TextChunker().chunk_by_fixed_size(text, size=10, overlap=5)

        # ceil((25 - 5) / (10 - 5)) == 4
        assert result.total_chunks == 4
        assert [c.metadata.start_char for c in result.chunks] == [0, 5, 10, 15]
        assert result.chunks[-1].content == "pqrstuvwxy"
        for chunk in result.chunks:
            assert text[chunk.metadata.start_char : chunk.metadata.end_char] == chunk.content

    def test_text_equal_to_size_is_one_chunk(self) -> None:
        result = TextChunker().chunk_by_fixed_size("x" * 10, size=10, overlap=3)
        assert result.total_chunks == 1

    def test_empty_text(self) -> None:
        assert TextChunker().chunk_by_fixed_size("", size=10).total_chunks == 0

    def test_overlap_not_smaller_than_size_raises(self) -> None:
        with pytest.raises(ConfigurationError):
            TextChunker().chunk_by_fixed_size("abc", size=5, overlap=5)


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------


class TestPreprocessText:
    def test_normalizes_whitespace(self) -> None:
        raw = "  First line\r\nsecond\t\tline\n\n\n\nthird   line  "
        assert TextChunker.preprocess_text(raw) == "First line second line third line"

    def test_idempotent(self) -> None:
        raw = "a\r\n\r\n\r\nb   c\n"
        once = TextChunker.preprocess_text(raw)
        assert TextChunker.preprocess_text(once) == once

    def test_empty(self) -> None:
        assert TextChunker.preprocess_text("   \n ") == ""

"""Command-line interface for docrag.

``python -m docrag.cli <command>`` where command is one of ``ingest``,
``search``, ``delete``, ``stats``, ``list`` or ``health``.  Results are
printed to stdout as JSON; logs go to stderr.
"""

"""
Input format readers.

Provides loaders that turn on-disk judgment and run files into the
in-memory JudgmentSet / RunSet models:
- TREC qrels and run files
"""

from irmetrics.formats.trec import (
    TrecRel,
    TrecResult,
    parse_qrel_line,
    parse_run_line,
    parse_qrels,
    parse_run,
    read_qrels,
    read_run,
)

__all__ = [
    "TrecRel",
    "TrecResult",
    "parse_qrel_line",
    "parse_run_line",
    "parse_qrels",
    "parse_run",
    "read_qrels",
    "read_run",
]

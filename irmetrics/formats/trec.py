"""
Readers for TREC qrels and run files.

qrels lines:  <query> <iteration> <document> <grade>
run lines:    <query> <iteration> <document> <rank> <score> <run tag>

Fields are whitespace-separated; blank lines are skipped. Line order within a
query is the rank order; the rank and score columns are kept on each
TrecResult but never reorder a ranking unless sort_by_score is requested.

The iteration column is read and then collapsed: run lines are grouped by run
tag only, and lines of one query under different iterations of the same tag
form a single ranking (trec_eval treats the column as unused). Callers that
need per-iteration rankings can group the TrecResult records themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from irmetrics.exceptions import TrecFormatError
from irmetrics.models.common import DocumentId, QueryId, RelevanceGrade
from irmetrics.models.judgments import JudgmentSet
from irmetrics.models.rankings import RunSet
from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TrecRel:
    """One qrels line."""
    query_id: QueryId
    iteration: str
    document_id: DocumentId
    relevance: RelevanceGrade


@dataclass(frozen=True)
class TrecResult:
    """One run line."""
    query_id: QueryId
    iteration: str
    document_id: DocumentId
    rank: int
    score: float
    run_id: str


def _parse_grade(field: str, line_number: int) -> RelevanceGrade:
    try:
        return int(field)
    except ValueError:
        pass
    try:
        return float(field)
    except ValueError as e:
        raise TrecFormatError("cannot parse relevance", line_number) from e


def parse_qrel_line(line: str, line_number: int = 0) -> TrecRel:
    """
    Parse one qrels line.

    Raises:
        TrecFormatError: On a wrong field count or a non-numeric grade
    """
    fields = line.split()
    if len(fields) < 4:
        raise TrecFormatError("too few fields", line_number or None)
    if len(fields) > 4:
        raise TrecFormatError("too many fields", line_number or None)
    query_id, iteration, document_id, grade = fields
    return TrecRel(
        query_id=QueryId(query_id),
        iteration=iteration,
        document_id=DocumentId(document_id),
        relevance=_parse_grade(grade, line_number or None)
    )


def parse_run_line(line: str, line_number: int = 0) -> TrecResult:
    """
    Parse one run line.

    Raises:
        TrecFormatError: On a wrong field count or a non-numeric rank/score
    """
    fields = line.split()
    if len(fields) < 6:
        raise TrecFormatError("too few fields", line_number or None)
    if len(fields) > 6:
        raise TrecFormatError("too many fields", line_number or None)
    query_id, iteration, document_id, rank, score, run_id = fields
    try:
        parsed_rank = int(rank)
    except ValueError as e:
        raise TrecFormatError("cannot parse rank", line_number or None) from e
    try:
        parsed_score = float(score)
    except ValueError as e:
        raise TrecFormatError("cannot parse score", line_number or None) from e
    return TrecResult(
        query_id=QueryId(query_id),
        iteration=iteration,
        document_id=DocumentId(document_id),
        rank=parsed_rank,
        score=parsed_score,
        run_id=run_id
    )


def parse_qrels(
    lines: Iterable[str],
    on_duplicate: str = "error",
    strict: bool = True
) -> JudgmentSet:
    """
    Build a JudgmentSet from qrels lines.

    Args:
        lines: qrels text lines
        on_duplicate: 'error', 'max' or 'min' (see JudgmentSet.from_records)
        strict: Raise on a bad query instead of recording it in ``invalid``

    Raises:
        TrecFormatError: On a malformed line
        DataIntegrityError: On duplicate judgments (strict mode)
    """
    records = [
        (rel.query_id, rel.document_id, rel.relevance)
        for rel in _parse_lines(lines, parse_qrel_line)
    ]
    return JudgmentSet.from_records(records, on_duplicate=on_duplicate, strict=strict)


def parse_run(
    lines: Iterable[str],
    sort_by_score: bool = False,
    strict: bool = True
) -> Dict[str, RunSet]:
    """
    Build one RunSet per run tag from run lines.

    Args:
        lines: run text lines
        sort_by_score: Order each query by descending score (ties by
            descending document id). By default file order is the rank order
        strict: Raise on a bad query instead of recording it in ``invalid``

    Returns:
        Dict of run tag -> RunSet, in order of first appearance

    Raises:
        TrecFormatError: On a malformed line
        DataIntegrityError: On a document listed twice for a query (strict mode)
    """
    grouped: Dict[str, List[Tuple[QueryId, DocumentId, float]]] = {}
    for result in _parse_lines(lines, parse_run_line):
        grouped.setdefault(result.run_id, []).append(
            (result.query_id, result.document_id, result.score)
        )
    return {
        run_id: RunSet.from_records(records, sort_by_score=sort_by_score, strict=strict, name=run_id)
        for run_id, records in grouped.items()
    }


def read_qrels(path: Union[Path, str], **kwargs) -> JudgmentSet:
    """Read a qrels file. Keyword arguments go to parse_qrels()."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Qrels file not found: {path}")

    logger.info(f"Loading qrels from {path}")
    with open(path, 'r', encoding='utf-8') as f:
        judgments = parse_qrels(f, **kwargs)
    logger.info(f"Loaded judgments for {len(judgments)} queries from {path}")
    return judgments


def read_run(path: Union[Path, str], **kwargs) -> Dict[str, RunSet]:
    """Read a run file. Keyword arguments go to parse_run()."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Run file not found: {path}")

    logger.info(f"Loading run from {path}")
    with open(path, 'r', encoding='utf-8') as f:
        runs = parse_run(f, **kwargs)
    logger.info(f"Loaded {len(runs)} run(s) from {path}")
    return runs


def _parse_lines(lines: Iterable[str], parse_line):
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue
        yield parse_line(line, line_number)

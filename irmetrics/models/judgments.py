"""
Relevance judgments (qrels).

A JudgmentSet maps each query to the grades assessors gave its documents.
A document with no entry is unjudged, which is not the same as grade 0.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from irmetrics.exceptions import DataIntegrityError
from irmetrics.models.common import DocumentId, QueryId, RelevanceGrade, is_valid_grade
from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)

_EMPTY: Mapping[DocumentId, RelevanceGrade] = MappingProxyType({})

DUPLICATE_POLICIES = ("error", "max", "min")


class JudgmentSet:
    """
    Read-only collection of relevance judgments grouped by query.

    Example:
        >>> qrels = JudgmentSet({"q1": {"d1": 1, "d2": 0, "d3": 2}})
        >>> qrels.for_query("q1")["d3"]
        2
        >>> qrels.relevant_count("q1")
        2
    """

    def __init__(
        self,
        judgments: Optional[Mapping[QueryId, Mapping[DocumentId, RelevanceGrade]]] = None,
        invalid: Optional[Mapping[QueryId, DataIntegrityError]] = None
    ):
        self._judgments: Dict[QueryId, Mapping[DocumentId, RelevanceGrade]] = {}
        for query_id, grades in (judgments or {}).items():
            for doc_id, grade in grades.items():
                _check_grade(query_id, doc_id, grade)
            self._judgments[query_id] = MappingProxyType(dict(grades))
        self.invalid: Mapping[QueryId, DataIntegrityError] = MappingProxyType(dict(invalid or {}))

    @classmethod
    def from_records(
        cls,
        records: Iterable[Tuple[QueryId, DocumentId, RelevanceGrade]],
        on_duplicate: str = "error",
        strict: bool = True
    ) -> "JudgmentSet":
        """
        Build a judgment set from (query, document, grade) triples.

        Args:
            records: Judgment triples in any order
            on_duplicate: 'error' rejects a repeated (query, document) pair;
                'max' / 'min' keep the higher / lower grade
            strict: Raise on the first bad query. When False, bad queries are
                left out and recorded in ``invalid``

        Returns:
            JudgmentSet

        Raises:
            ValueError: If on_duplicate is not a known policy
            DataIntegrityError: On duplicates or bad grades (strict mode)
        """
        if on_duplicate not in DUPLICATE_POLICIES:
            raise ValueError(
                f"Unknown duplicate policy: {on_duplicate} (expected one of {DUPLICATE_POLICIES})"
            )

        grouped: Dict[QueryId, Dict[DocumentId, RelevanceGrade]] = {}
        invalid: Dict[QueryId, DataIntegrityError] = {}

        for query_id, doc_id, grade in records:
            if query_id in invalid:
                continue
            try:
                _check_grade(query_id, doc_id, grade)
                grades = grouped.setdefault(query_id, {})
                if doc_id in grades:
                    if on_duplicate == "error":
                        raise DataIntegrityError(
                            f"Duplicate judgment for query {query_id!r}, document {doc_id!r}",
                            query_id=query_id,
                            document_id=doc_id
                        )
                    pick = max if on_duplicate == "max" else min
                    grades[doc_id] = pick(grades[doc_id], grade)
                else:
                    grades[doc_id] = grade
            except DataIntegrityError as e:
                if strict:
                    raise
                logger.warning(f"Dropping judgments for query {query_id!r}: {e}")
                invalid[query_id] = e
                grouped.pop(query_id, None)

        return cls(grouped, invalid=invalid)

    def for_query(self, query_id: QueryId) -> Mapping[DocumentId, RelevanceGrade]:
        """Judgments for one query; empty when the query has none."""
        return self._judgments.get(query_id, _EMPTY)

    def relevant(self, query_id: QueryId, threshold: float = 0.0) -> List[DocumentId]:
        """Documents judged above the threshold."""
        return [d for d, g in self.for_query(query_id).items() if g > threshold]

    def relevant_count(self, query_id: QueryId, threshold: float = 0.0) -> int:
        return len(self.relevant(query_id, threshold))

    def queries(self) -> List[QueryId]:
        return list(self._judgments)

    def __contains__(self, query_id: Any) -> bool:
        return query_id in self._judgments

    def __iter__(self) -> Iterator[QueryId]:
        return iter(self._judgments)

    def __len__(self) -> int:
        return len(self._judgments)

    def __repr__(self) -> str:
        return f"JudgmentSet(queries={len(self._judgments)}, invalid={len(self.invalid)})"


def _check_grade(query_id: QueryId, doc_id: DocumentId, grade: Any) -> None:
    if not is_valid_grade(grade):
        raise DataIntegrityError(
            f"Invalid relevance grade {grade!r} for query {query_id!r}, document {doc_id!r}",
            query_id=query_id,
            document_id=doc_id
        )

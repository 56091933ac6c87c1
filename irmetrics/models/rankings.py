"""
Rankings produced by the system under evaluation.

The position of an entry in a Ranking is its rank (rank 1 is the first
entry). Scores are carried along but never used to reorder an existing
Ranking; only Ranking.from_scores derives an order from scores.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from irmetrics.exceptions import DataIntegrityError
from irmetrics.models.common import DocumentId, QueryId
from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RankedDocument:
    """One retrieved document and the score the system gave it."""
    doc_id: DocumentId
    score: float = 0.0


@dataclass(frozen=True)
class Ranking:
    """
    Ordered, duplicate-free list of retrieved documents for one query.

    Example:
        >>> ranking = Ranking.from_documents(["d3", "d1", "d2"])
        >>> ranking.doc_ids
        ('d3', 'd1', 'd2')
    """
    entries: Tuple[RankedDocument, ...] = ()
    query_id: Optional[QueryId] = None

    def __post_init__(self):
        entries = tuple(
            e if isinstance(e, RankedDocument) else RankedDocument(*e)
            for e in self.entries
        )
        object.__setattr__(self, "entries", entries)

        seen = set()
        for entry in entries:
            if entry.doc_id in seen:
                raise DataIntegrityError(
                    f"Duplicate document {entry.doc_id!r} in ranking for query {self.query_id!r}",
                    query_id=self.query_id,
                    document_id=entry.doc_id
                )
            seen.add(entry.doc_id)

    @classmethod
    def from_documents(
        cls,
        doc_ids: Sequence[DocumentId],
        query_id: Optional[QueryId] = None
    ) -> "Ranking":
        """Ranking in the given order, with descending synthetic scores."""
        n = len(doc_ids)
        return cls(
            tuple(RankedDocument(d, float(n - i)) for i, d in enumerate(doc_ids)),
            query_id=query_id
        )

    @classmethod
    def from_scores(
        cls,
        scores: Union[Mapping[DocumentId, float], Iterable[Tuple[DocumentId, float]]],
        query_id: Optional[QueryId] = None
    ) -> "Ranking":
        """
        Derive rank order from retrieval scores.

        Sorts by descending score. Equal scores are ordered by descending
        document id, the convention trec_eval applies, so the result does
        not depend on input order.

        Raises:
            DataIntegrityError: If a document appears twice in an iterable of pairs
        """
        pairs = list(scores.items()) if isinstance(scores, Mapping) else list(scores)
        pairs.sort(key=lambda pair: (pair[1], pair[0]), reverse=True)
        return cls(
            tuple(RankedDocument(d, float(s)) for d, s in pairs),
            query_id=query_id
        )

    @property
    def doc_ids(self) -> Tuple[DocumentId, ...]:
        return tuple(e.doc_id for e in self.entries)

    def truncate(self, k: Optional[int]) -> "Ranking":
        """First k entries (all of them when k is None or exceeds the length)."""
        if k is None or k >= len(self.entries):
            return self
        return Ranking(self.entries[:k], query_id=self.query_id)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[RankedDocument]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> RankedDocument:
        return self.entries[index]


EMPTY_RANKING = Ranking()


class RunSet:
    """
    Read-only mapping from query to the system's Ranking for that query.

    Example:
        >>> run = RunSet({"q1": ["d3", "d1", "d2", "d4"]})
        >>> run["q1"].doc_ids[0]
        'd3'
    """

    def __init__(
        self,
        rankings: Optional[Mapping[QueryId, Any]] = None,
        invalid: Optional[Mapping[QueryId, DataIntegrityError]] = None,
        name: str = ""
    ):
        """
        Args:
            rankings: query -> Ranking, or a sequence of document ids, or a
                sequence of (document, score) pairs kept in the given order
            invalid: Queries already rejected by a loader
            name: Run tag
        """
        self.name = name
        self._rankings: Dict[QueryId, Ranking] = {}
        for query_id, value in (rankings or {}).items():
            self._rankings[query_id] = _coerce_ranking(query_id, value)
        self.invalid: Mapping[QueryId, DataIntegrityError] = MappingProxyType(dict(invalid or {}))

    @classmethod
    def from_records(
        cls,
        records: Iterable[Tuple[QueryId, DocumentId, float]],
        sort_by_score: bool = False,
        strict: bool = True,
        name: str = ""
    ) -> "RunSet":
        """
        Build a run from (query, document, score) triples.

        Args:
            records: Retrieved documents; per query, in system output order
            sort_by_score: Re-derive order with Ranking.from_scores. By
                default record order is the rank order and scores are kept
                as given
            strict: Raise on the first bad query. When False, bad queries are
                left out and recorded in ``invalid``
            name: Run tag

        Raises:
            DataIntegrityError: On a duplicate document within a query (strict mode)
        """
        grouped: Dict[QueryId, List[Tuple[DocumentId, float]]] = {}
        for query_id, doc_id, score in records:
            grouped.setdefault(query_id, []).append((doc_id, float(score)))

        rankings: Dict[QueryId, Ranking] = {}
        invalid: Dict[QueryId, DataIntegrityError] = {}
        for query_id, pairs in grouped.items():
            try:
                _check_unique(query_id, pairs)
                if sort_by_score:
                    rankings[query_id] = Ranking.from_scores(pairs, query_id=query_id)
                else:
                    rankings[query_id] = Ranking(tuple(pairs), query_id=query_id)
            except DataIntegrityError as e:
                if strict:
                    raise
                logger.warning(f"Dropping ranking for query {query_id!r}: {e}")
                invalid[query_id] = e

        return cls(rankings, invalid=invalid, name=name)

    def get(self, query_id: QueryId, default: Optional[Ranking] = None) -> Optional[Ranking]:
        return self._rankings.get(query_id, default)

    def queries(self) -> List[QueryId]:
        return list(self._rankings)

    def __getitem__(self, query_id: QueryId) -> Ranking:
        return self._rankings[query_id]

    def __contains__(self, query_id: Any) -> bool:
        return query_id in self._rankings

    def __iter__(self) -> Iterator[QueryId]:
        return iter(self._rankings)

    def __len__(self) -> int:
        return len(self._rankings)

    def __repr__(self) -> str:
        return f"RunSet(name={self.name!r}, queries={len(self._rankings)}, invalid={len(self.invalid)})"


def _check_unique(query_id: QueryId, pairs: List[Tuple[DocumentId, float]]) -> None:
    seen = set()
    for doc_id, _ in pairs:
        if doc_id in seen:
            raise DataIntegrityError(
                f"Duplicate document {doc_id!r} in ranking for query {query_id!r}",
                query_id=query_id,
                document_id=doc_id
            )
        seen.add(doc_id)


def _coerce_ranking(query_id: QueryId, value: Any) -> Ranking:
    if isinstance(value, Ranking):
        if value.query_id is None:
            return Ranking(value.entries, query_id=query_id)
        return value
    items = list(value)
    if items and isinstance(items[0], (tuple, list, RankedDocument)):
        return Ranking(tuple(items), query_id=query_id)
    return Ranking.from_documents(items, query_id=query_id)

"""
ScoreTable: the per-query output of an evaluation run.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Tuple

from irmetrics.models.common import MetricSpec, QueryId, Score
from irmetrics.utils.hashing import fingerprint_scores


class ScoreTable(Mapping):
    """
    Immutable mapping (query, metric) -> Score.

    Row order follows the order queries were evaluated in, and column order
    follows the order metrics were requested in, so two tables built from the
    same inputs iterate identically.
    """

    def __init__(
        self,
        rows: Iterable[Tuple[QueryId, Mapping[MetricSpec, Score]]] = (),
        specs: Iterable[MetricSpec] = ()
    ):
        self._rows: Dict[QueryId, Mapping[MetricSpec, Score]] = {}
        spec_order: Dict[MetricSpec, None] = dict.fromkeys(specs)
        for query_id, scores in rows:
            self._rows[query_id] = MappingProxyType(dict(scores))
            for spec in scores:
                spec_order.setdefault(spec, None)
        self._specs: Tuple[MetricSpec, ...] = tuple(spec_order)

    @property
    def queries(self) -> List[QueryId]:
        return list(self._rows)

    @property
    def specs(self) -> Tuple[MetricSpec, ...]:
        return self._specs

    def for_query(self, query_id: QueryId) -> Mapping[MetricSpec, Score]:
        return self._rows[query_id]

    def for_spec(self, spec: MetricSpec) -> Dict[QueryId, Score]:
        """Per-query scores for one metric, undefined values included."""
        return {q: row[spec] for q, row in self._rows.items() if spec in row}

    def fingerprint(self) -> str:
        """SHA-256 over every (query, metric, value); equal iff bit-identical."""
        return fingerprint_scores(
            (str(q), spec.label, score)
            for q, row in self._rows.items()
            for spec, score in row.items()
        )

    def __getitem__(self, key: Tuple[QueryId, MetricSpec]) -> Score:
        query_id, spec = key
        return self._rows[query_id][spec]

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, tuple) or len(key) != 2:
            return False
        query_id, spec = key
        return query_id in self._rows and spec in self._rows[query_id]

    def __iter__(self) -> Iterator[Tuple[QueryId, MetricSpec]]:
        for query_id, row in self._rows.items():
            for spec in row:
                yield (query_id, spec)

    def __len__(self) -> int:
        return sum(len(row) for row in self._rows.values())

    def __repr__(self) -> str:
        return f"ScoreTable(queries={len(self._rows)}, metrics={len(self._specs)})"

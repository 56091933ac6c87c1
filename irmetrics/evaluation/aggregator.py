"""
Aggregation of per-query scores into summary statistics.

Undefined scores are excluded from a metric's mean and counted separately.
A metric with no defined score at all aggregates to UNDEFINED ("no data").
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

import numpy as np

from irmetrics.exceptions import ConfigurationError
from irmetrics.models.common import UNDEFINED, MetricSpec, QueryId, Score, is_defined
from irmetrics.models.scores import ScoreTable

# Floor applied before taking logs in the geometric mean (trec_eval's GMAP)
GMEAN_EPSILON = 1e-5

AGGREGATION_METHODS = ("mean", "gmean")


@dataclass
class AggregateScore:
    """Summary of one metric over the query set."""
    spec: MetricSpec
    value: Score
    defined: int
    excluded: int
    per_query: Mapping[QueryId, Score] = field(default_factory=dict)
    method: str = "mean"

    @property
    def has_data(self) -> bool:
        return is_defined(self.value)

    @property
    def total(self) -> int:
        return self.defined + self.excluded

    def defined_scores(self) -> Dict[QueryId, float]:
        """Per-query scores with undefined entries left out."""
        return {q: s for q, s in self.per_query.items() if is_defined(s)}

    def to_numpy(self, queries: Optional[List[QueryId]] = None) -> np.ndarray:
        """
        Per-query vector for significance testing; NaN marks undefined.

        Args:
            queries: Query order (default: table order). Queries without a
                score for this metric are NaN too.
        """
        order = list(self.per_query) if queries is None else queries
        return np.array(
            [
                float(self.per_query[q]) if q in self.per_query and is_defined(self.per_query[q])
                else np.nan
                for q in order
            ],
            dtype=np.float64
        )


def _reduce(values: List[float], method: str) -> float:
    if method == "gmean":
        return math.exp(math.fsum(math.log(max(v, GMEAN_EPSILON)) for v in values) / len(values))
    return math.fsum(values) / len(values)


def aggregate_spec(table: ScoreTable, spec: MetricSpec, method: str = "mean") -> AggregateScore:
    """Aggregate one metric column of a ScoreTable."""
    if method not in AGGREGATION_METHODS:
        raise ConfigurationError(
            f"Unknown aggregation method: {method} (expected one of {AGGREGATION_METHODS})"
        )

    per_query = table.for_spec(spec)
    values = [s for s in per_query.values() if is_defined(s)]
    excluded = len(per_query) - len(values)

    return AggregateScore(
        spec=spec,
        value=_reduce(values, method) if values else UNDEFINED,
        defined=len(values),
        excluded=excluded,
        per_query=per_query,
        method=method
    )


def aggregate(table: ScoreTable, method: str = "mean") -> Dict[MetricSpec, AggregateScore]:
    """
    Aggregate every metric in a ScoreTable.

    Args:
        table: Per-query scores
        method: 'mean' (arithmetic mean over defined scores) or 'gmean'
            (geometric mean with scores floored at 1e-5)

    Returns:
        Dict of MetricSpec -> AggregateScore, in the table's metric order

    Raises:
        ConfigurationError: If the method is unknown

    Example:
        >>> summary = aggregate(table)
        >>> summary[spec].value, summary[spec].excluded
        (0.5, 1)
    """
    return {spec: aggregate_spec(table, spec, method) for spec in table.specs}

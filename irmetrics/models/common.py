"""
Core value types shared across irmetrics.

Identifiers are plain strings wrapped in NewType aliases. Metric values are
either a float or the Undefined marker; the two are never conflated.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import NewType, Optional, Union

# Type aliases to enforce type safety
QueryId = NewType('QueryId', str)
DocumentId = NewType('DocumentId', str)

RelevanceGrade = Union[int, float]


class Undefined(Enum):
    """Marker for a metric that has no meaningful value for a query."""
    UNDEFINED = "undefined"

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __str__(self) -> str:
        return "n/a"


UNDEFINED = Undefined.UNDEFINED

Score = Union[float, Undefined]


def is_defined(score: Score) -> bool:
    """True when the score carries a numeric value."""
    return score is not UNDEFINED


def is_valid_grade(grade: object) -> bool:
    """Grades are finite ints or floats; booleans are rejected."""
    if isinstance(grade, bool) or not isinstance(grade, (int, float)):
        return False
    return math.isfinite(grade)


@dataclass(frozen=True)
class MetricSpec:
    """
    A metric family together with its parameters.

    Two specs with different parameters are different metrics: P@5 and P@10
    are distinct keys in a ScoreTable.

    Attributes:
        metric: Registered family name ('precision', 'ndcg', 'rbp', ...)
        k: Cutoff depth (None means the whole ranking)
        threshold: A document is relevant when its grade is above this value
        log_base: Logarithm base of the DCG discount
        gain: 'exponential' (2^g - 1) or 'linear' (g)
        persistence: RBP user persistence p in [0, 1)
        unjudged: 'nonrelevant' counts unjudged documents as non-relevant,
            'condensed' drops them from the ranking before the cutoff
        no_relevant: What precision/dcg/rbp report for a query with no
            relevant documents: 'zero' or 'undefined'
        precision_denominator: 'retrieved' divides by min(k, |ranking|),
            'cutoff' divides by k
    """
    metric: str
    k: Optional[int] = None
    threshold: float = 0.0
    log_base: float = 2.0
    gain: str = "exponential"
    persistence: float = 0.8
    unjudged: str = "nonrelevant"
    no_relevant: str = "zero"
    precision_denominator: str = "retrieved"

    @property
    def label(self) -> str:
        """Stable display name, e.g. 'P@5', 'ndcg@10', 'RBP:95'."""
        base = _LABELS.get(self.metric, self.metric)
        if self.metric == "rbp":
            cutoff = f"@{self.k}" if self.k is not None else ""
            text = f"{base}{cutoff}:{self.persistence * 100:g}"
        elif self.k is not None:
            text = f"{base}@{self.k}"
        else:
            text = base

        extras = []
        for f in fields(self):
            if f.name in ("metric", "k", "persistence"):
                continue
            value = getattr(self, f.name)
            if value != f.default:
                extras.append(f"{f.name}={value}")
        if extras:
            text += "(" + ",".join(extras) + ")"
        return text

    def __str__(self) -> str:
        return self.label


_LABELS = {
    "precision": "P",
    "recall": "recall",
    "ap": "map",
    "dcg": "dcg",
    "ndcg": "ndcg",
    "rr": "recip_rank",
    "rbp": "RBP",
    "success": "success",
    "rprec": "Rprec",
}

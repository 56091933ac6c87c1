"""
Data models module.

Provides the in-memory inputs and outputs of an evaluation:
- Identifiers, grades and the Undefined score marker
- Judgment sets (qrels)
- Rankings and run sets
- Metric specifications and score tables
"""

from irmetrics.models.common import (
    QueryId,
    DocumentId,
    RelevanceGrade,
    Undefined,
    UNDEFINED,
    Score,
    MetricSpec,
    is_defined,
)
from irmetrics.models.judgments import JudgmentSet
from irmetrics.models.rankings import RankedDocument, Ranking, RunSet, EMPTY_RANKING
from irmetrics.models.scores import ScoreTable

__all__ = [
    # Identifiers and values
    "QueryId",
    "DocumentId",
    "RelevanceGrade",
    "Undefined",
    "UNDEFINED",
    "Score",
    "is_defined",
    # Inputs
    "JudgmentSet",
    "RankedDocument",
    "Ranking",
    "RunSet",
    "EMPTY_RANKING",
    # Outputs
    "MetricSpec",
    "ScoreTable",
]

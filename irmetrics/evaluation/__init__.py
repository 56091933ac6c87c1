"""
Evaluation module for retrieval quality assessment.

Provides metrics and utilities for evaluating search/retrieval runs:
- Precision@K, Recall@K, Success@K, R-precision
- Average precision (MAP), reciprocal rank (MRR)
- DCG / nDCG, rank-biased precision
- Metric registry with name parsing ('P@10', 'ndcg_cut_20', 'RBP:95')
- Per-query and batch evaluation, aggregation with undefined-score exclusion
"""

from irmetrics.evaluation.registry import (
    MetricFamily,
    MetricRegistry,
    default_registry,
    register_metric,
    parse_metric,
)
from irmetrics.evaluation.metrics import (
    precision,
    recall,
    average_precision,
    dcg,
    ndcg,
    reciprocal_rank,
    rank_biased_precision,
    success,
    r_precision,
    ideal_ranking,
    overlap,
)
from irmetrics.evaluation.aggregator import AggregateScore, aggregate, aggregate_spec
from irmetrics.evaluation.evaluator import EvaluationResult, Evaluator, evaluate_query

__all__ = [
    # Registry
    "MetricFamily",
    "MetricRegistry",
    "default_registry",
    "register_metric",
    "parse_metric",
    # Metric functions
    "precision",
    "recall",
    "average_precision",
    "dcg",
    "ndcg",
    "reciprocal_rank",
    "rank_biased_precision",
    "success",
    "r_precision",
    "ideal_ranking",
    "overlap",
    # Aggregation
    "AggregateScore",
    "aggregate",
    "aggregate_spec",
    # Evaluation
    "EvaluationResult",
    "Evaluator",
    "evaluate_query",
]

"""
irmetrics: Information retrieval evaluation metrics.

Computes per-query and aggregate retrieval quality scores from relevance
judgments and ranked runs, with explicit handling of unjudged documents,
ties and queries for which a metric is undefined.

Modules:
    models: Judgments, rankings, metric specs, score tables
    evaluation: Metric registry, metric families, evaluator, aggregator
    formats: TREC qrels/run readers
    utils: Configuration, logging, batch execution, hashing
    exceptions: ConfigurationError, DataIntegrityError, TrecFormatError
"""

__version__ = "0.1.0"

from irmetrics import exceptions, models, evaluation, formats, utils
from irmetrics.evaluation import Evaluator, aggregate, evaluate_query, parse_metric
from irmetrics.exceptions import ConfigurationError, DataIntegrityError
from irmetrics.models import UNDEFINED, JudgmentSet, MetricSpec, Ranking, RunSet, is_defined

__all__ = [
    "exceptions",
    "models",
    "evaluation",
    "formats",
    "utils",
    # Convenience
    "Evaluator",
    "aggregate",
    "evaluate_query",
    "parse_metric",
    "ConfigurationError",
    "DataIntegrityError",
    "UNDEFINED",
    "JudgmentSet",
    "MetricSpec",
    "Ranking",
    "RunSet",
    "is_defined",
    "__version__",
]

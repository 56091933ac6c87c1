"""
Per-query and batch evaluation.

evaluate_query() scores one ranking against one query's judgments and is
pure, so queries can be scored in any order or in parallel. Evaluator drives
a whole run: it resolves metrics up front, splits queries into chunks, runs
them inline or on a worker pool, and assembles the ScoreTable in query order.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from irmetrics.evaluation.aggregator import AGGREGATION_METHODS, AggregateScore, aggregate
from irmetrics.evaluation.registry import MetricRegistry, default_registry
from irmetrics.exceptions import ConfigurationError
from irmetrics.models.common import (
    DocumentId,
    MetricSpec,
    QueryId,
    RelevanceGrade,
    Score,
    is_defined,
)
from irmetrics.models.judgments import JudgmentSet
from irmetrics.models.rankings import EMPTY_RANKING, Ranking, RunSet
from irmetrics.models.scores import ScoreTable
from irmetrics.utils.batch import AbortSignal, process_chunks
from irmetrics.utils.config import EvaluationConfig, get_settings
from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)

MetricRequest = Union[str, MetricSpec]
QueryTask = Tuple[QueryId, Ranking, Mapping[DocumentId, RelevanceGrade]]


def evaluate_query(
    query_id: QueryId,
    ranking: Optional[Ranking],
    judgments: Optional[Mapping[DocumentId, RelevanceGrade]],
    specs: Iterable[MetricRequest],
    registry: Optional[MetricRegistry] = None
) -> Dict[MetricSpec, Score]:
    """
    Score one query's ranking with every requested metric.

    A missing ranking is scored as an empty ranking and missing judgments as
    an empty judgment set; neither raises.

    Args:
        query_id: Query identifier (used for error messages only)
        ranking: The system's ranking, or None
        judgments: document -> grade for this query, or None
        specs: Metric names or MetricSpecs
        registry: Metric registry (default: built-in families)

    Returns:
        Dict of resolved MetricSpec -> Score

    Raises:
        ConfigurationError: If a metric is unknown or misconfigured

    Example:
        >>> scores = evaluate_query("q1", Ranking.from_documents(["d3", "d1"]), {"d1": 1, "d3": 2}, ["P@2"])
        >>> scores[parse_metric("P@2")]
        1.0
    """
    registry = registry or default_registry
    resolved = registry.specs_from_names(specs)
    return _score_query(
        ranking if ranking is not None else EMPTY_RANKING,
        judgments if judgments is not None else {},
        resolved,
        registry
    )


def _score_query(
    ranking: Ranking,
    judgments: Mapping[DocumentId, RelevanceGrade],
    specs: Sequence[MetricSpec],
    registry: MetricRegistry
) -> Dict[MetricSpec, Score]:
    return {spec: registry.compute(spec, ranking, judgments) for spec in specs}


def _evaluate_chunk(
    tasks: List[QueryTask],
    specs: Sequence[MetricSpec],
    registry: MetricRegistry
) -> List[Tuple[QueryId, Dict[MetricSpec, Score]]]:
    """Worker task: score a chunk of queries."""
    return [
        (query_id, _score_query(ranking, judgments, specs, registry))
        for query_id, ranking, judgments in tasks
    ]


@dataclass
class EvaluationResult:
    """Everything an evaluation run produced, for an external reporting layer."""
    table: ScoreTable
    summary: Dict[MetricSpec, AggregateScore]
    skipped: Dict[QueryId, str] = field(default_factory=dict)
    aborted: bool = False
    pending: List[QueryId] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def specs(self) -> Tuple[MetricSpec, ...]:
        return self.table.specs

    def export_to_dict(self) -> Dict[str, Any]:
        """Export to a JSON-ready dict; undefined scores become None."""
        return {
            "timestamp": self.timestamp,
            "total_queries": len(self.table.queries),
            "aborted": self.aborted,
            "metrics": {
                spec.label: {
                    "value": _jsonable(agg.value),
                    "defined": agg.defined,
                    "excluded": agg.excluded,
                    "method": agg.method,
                }
                for spec, agg in self.summary.items()
            },
            "queries": {
                str(query_id): {
                    spec.label: _jsonable(score)
                    for spec, score in self.table.for_query(query_id).items()
                }
                for query_id in self.table.queries
            },
            "skipped": {str(q): reason for q, reason in self.skipped.items()},
            "pending": [str(q) for q in self.pending],
            "fingerprint": self.table.fingerprint(),
            "metadata": self.metadata,
        }


def _jsonable(score: Score) -> Optional[float]:
    return score if is_defined(score) else None


class Evaluator:
    """
    Batch evaluator over a judgment set and a run.

    Features:
    - Metric names resolved and validated before any query is scored
    - Queries missing from the run scored against an empty ranking
    - Queries rejected by the loaders skipped and reported, not fatal
    - Inline, thread-pool or process-pool execution over query chunks
    - Early abort between chunks with partial results kept

    Example:
        >>> evaluator = Evaluator(
        ...     {"q1": {"d1": 1, "d2": 0, "d3": 2}},
        ...     {"q1": ["d3", "d1", "d2", "d4"]},
        ...     metrics=["P@2", "P@4", "recall@4", "map"]
        ... )
        >>> result = evaluator.evaluate()
        >>> result.summary[evaluator.specs[0]].value
        1.0
    """

    def __init__(
        self,
        judgments: Union[JudgmentSet, Mapping[QueryId, Mapping[DocumentId, RelevanceGrade]]],
        runs: Union[RunSet, Mapping[QueryId, Any]],
        metrics: Optional[Iterable[MetricRequest]] = None,
        registry: Optional[MetricRegistry] = None,
        settings: Optional[EvaluationConfig] = None
    ):
        """
        Initialize evaluator.

        Args:
            judgments: JudgmentSet or {query: {doc: grade}}
            runs: RunSet or {query: ranking-like}
            metrics: Metric names or specs (default: settings.metrics)
            registry: Metric registry (default: built-in families)
            settings: Evaluation settings (default: global settings)

        Raises:
            ConfigurationError: If any metric is unknown or misconfigured
            DataIntegrityError: If plain-mapping inputs violate the data model
        """
        self.settings = settings or get_settings().evaluation
        self.registry = registry or default_registry
        self.judgments = judgments if isinstance(judgments, JudgmentSet) else JudgmentSet(judgments)
        self.runs = runs if isinstance(runs, RunSet) else RunSet(runs)
        self.specs: List[MetricSpec] = self.registry.specs_from_names(
            metrics if metrics is not None else self.settings.metrics
        )
        logger.info(f"Evaluator initialized with metrics={[s.label for s in self.specs]}")

    def query_order(self, include_unretrieved: Optional[bool] = None) -> List[QueryId]:
        """Run queries in run order, then judged queries the run never returned."""
        if include_unretrieved is None:
            include_unretrieved = self.settings.include_unretrieved
        order = list(self.runs.queries())
        if include_unretrieved:
            seen = set(order)
            order.extend(q for q in self.judgments.queries() if q not in seen)
        return order

    def skipped_queries(self) -> Dict[QueryId, str]:
        """Queries whose judgments or ranking were rejected while loading."""
        skipped: Dict[QueryId, str] = {}
        for invalid in (self.judgments.invalid, self.runs.invalid):
            for query_id, error in invalid.items():
                skipped.setdefault(query_id, str(error))
        return skipped

    def evaluate(
        self,
        max_workers: Optional[int] = None,
        chunk_size: Optional[int] = None,
        executor: Optional[str] = None,
        abort_event: Optional[AbortSignal] = None,
        show_progress: Optional[bool] = None,
        include_unretrieved: Optional[bool] = None,
        aggregation: str = "mean"
    ) -> EvaluationResult:
        """
        Score every query and aggregate.

        Args:
            max_workers: Pool size; 1 evaluates inline (default: settings)
            chunk_size: Queries per task (default: settings)
            executor: 'thread' or 'process' (default: settings)
            abort_event: threading.Event-like; checked between chunks
            show_progress: Show a progress bar (default: settings)
            include_unretrieved: Score judged queries missing from the run
            aggregation: 'mean' or 'gmean'

        Returns:
            EvaluationResult. After an abort, queries that were not scored
            are listed in ``pending`` and absent from the table.

        Raises:
            ConfigurationError: If the aggregation method is unknown; raised
                before any query is scored
        """
        if aggregation not in AGGREGATION_METHODS:
            raise ConfigurationError(
                f"Unknown aggregation method: {aggregation} (expected one of {AGGREGATION_METHODS})"
            )

        max_workers = max_workers or self.settings.max_workers
        chunk_size = chunk_size or self.settings.chunk_size
        executor = executor or self.settings.executor
        if show_progress is None:
            show_progress = self.settings.show_progress

        skipped = self.skipped_queries()
        for query_id, reason in skipped.items():
            logger.warning(f"Skipping query {query_id!r}: {reason}")

        queries = [q for q in self.query_order(include_unretrieved) if q not in skipped]
        logger.info(
            f"Evaluating {len(queries)} queries x {len(self.specs)} metrics "
            f"(workers={max_workers}, chunk_size={chunk_size}, executor={executor})"
        )

        detach = executor == "process" and max_workers > 1
        tasks: List[QueryTask] = []
        for query_id in queries:
            judged = self.judgments.for_query(query_id)
            tasks.append((
                query_id,
                self.runs.get(query_id, EMPTY_RANKING),
                dict(judged) if detach else judged
            ))

        outcome = process_chunks(
            tasks,
            partial(_evaluate_chunk, specs=self.specs, registry=self.registry),
            chunk_size=chunk_size,
            max_workers=max_workers,
            executor=executor,
            abort_event=abort_event,
            show_progress=show_progress,
            desc="Evaluating queries"
        )

        # Assemble in query order, independent of completion order
        rows = [row for chunk_rows in outcome.finished() for row in chunk_rows]
        table = ScoreTable(rows, specs=self.specs)
        pending = [task[0] for task in outcome.unfinished_items()]
        if outcome.aborted:
            logger.warning(f"Evaluation aborted: {len(rows)} scored, {len(pending)} pending")

        summary = aggregate(table, method=aggregation)
        result = EvaluationResult(
            table=table,
            summary=summary,
            skipped=skipped,
            aborted=outcome.aborted,
            pending=pending,
            metadata={"run": self.runs.name} if self.runs.name else {}
        )
        self._log_summary(result)
        return result

    def _log_summary(self, result: EvaluationResult) -> None:
        logger.info("=" * 60)
        logger.info(f"EVALUATION SUMMARY ({len(result.table.queries)} queries)")
        logger.info("=" * 60)
        for spec, agg in result.summary.items():
            value = f"{agg.value:.4f}" if agg.has_data else "no data"
            logger.info(f"{spec.label:<20} {value:>10}  (excluded: {agg.excluded})")
        logger.info("=" * 60)

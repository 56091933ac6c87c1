"""
Example: Evaluating retrieval runs with irmetrics

Four scenarios are shown:
1. Scoring in-memory judgments and rankings
2. Handling queries where a metric is undefined
3. Parallel evaluation with an abort signal
4. Comparing two systems per query with numpy
"""

import threading

import numpy as np

from irmetrics import Evaluator, JudgmentSet, Ranking, RunSet, evaluate_query, parse_metric
from irmetrics.models import is_defined


JUDGMENTS = JudgmentSet({
    "q1": {"d1": 1, "d2": 0, "d3": 2},
    "q2": {},
    "q3": {"d4": 1, "d7": 3},
})


def example_1_single_query():
    """
    Example 1: Score one query

    Use case: unit-testing a ranker, debugging a single query
    """
    print("=" * 60)
    print("Example 1: Single Query")
    print("=" * 60)

    ranking = Ranking.from_documents(["d3", "d1", "d2", "d4"])
    scores = evaluate_query("q1", ranking, JUDGMENTS.for_query("q1"), ["P@2", "P@4", "recall@4", "map", "ndcg@4"])

    for spec, score in scores.items():
        print(f"  {spec.label:<12} {score:.4f}")
    print()


def example_2_undefined_scores():
    """
    Example 2: Undefined is not zero

    q2 has no relevant documents, so recall and AP have no value for it and
    are left out of the mean instead of dragging it down.
    """
    print("=" * 60)
    print("Example 2: Undefined Scores")
    print("=" * 60)

    run = RunSet({"q1": ["d3", "d1"], "q2": ["d1", "d2"], "q3": ["d7", "d9", "d4"]})
    result = Evaluator(JUDGMENTS, run, metrics=["P@2", "recall@2", "map"]).evaluate()

    for spec, agg in result.summary.items():
        print(f"  {spec.label:<10} mean={agg.value:.4f}  defined={agg.defined}  excluded={agg.excluded}")
    print()


def example_3_parallel_with_abort():
    """
    Example 3: Thread pool with an abort signal

    Chunks that finished before the signal keep their scores; the rest are
    reported as pending.
    """
    print("=" * 60)
    print("Example 3: Parallel Evaluation")
    print("=" * 60)

    judgments = {f"q{i}": {f"d{j}": j % 3 for j in range(20)} for i in range(200)}
    run = {f"q{i}": [f"d{(i + j) % 20}" for j in range(10)] for i in range(200)}

    abort = threading.Event()
    evaluator = Evaluator(judgments, run, metrics=["ndcg@10", "RBP:80"])
    result = evaluator.evaluate(max_workers=4, chunk_size=25, abort_event=abort)

    print(f"✓ Scored {len(result.table.queries)} queries, pending {len(result.pending)}")
    print(f"✓ Fingerprint {result.table.fingerprint()[:16]}...")
    print()


def example_4_compare_systems():
    """
    Example 4: Per-query differences between two systems

    to_numpy() lines both systems up by query and marks undefined as NaN.
    """
    print("=" * 60)
    print("Example 4: System Comparison")
    print("=" * 60)

    baseline = RunSet({"q1": ["d2", "d1", "d3"], "q3": ["d9", "d4", "d7"]})
    improved = RunSet({"q1": ["d3", "d1", "d2"], "q3": ["d7", "d4", "d9"]})
    spec = parse_metric("ndcg@3")

    a = Evaluator(JUDGMENTS, baseline, metrics=[spec]).evaluate()
    b = Evaluator(JUDGMENTS, improved, metrics=[spec]).evaluate()
    queries = a.table.queries

    diff = b.summary[spec].to_numpy(queries) - a.summary[spec].to_numpy(queries)
    for query_id, delta in zip(queries, diff):
        print(f"  {query_id}: {'n/a' if np.isnan(delta) else f'{delta:+.4f}'}")
    mean = b.summary[spec].value
    print(f"✓ Improved mean ndcg@3: {mean:.4f}" if is_defined(mean) else "✓ No data")
    print()


if __name__ == "__main__":
    print("\nirmetrics Examples")
    print("==================\n")

    example_1_single_query()
    example_2_undefined_scores()
    example_3_parallel_with_abort()
    example_4_compare_systems()

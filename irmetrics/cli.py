"""
Command-line driver: evaluate TREC run files against TREC qrels.

    irm qrels.txt run.txt -m P@10 -m ndcg@20 -m map --per-query

Prints tab-separated lines: <run> <query|all> <metric> <value>, with 'n/a'
for undefined per-query values and 'no data' for metrics no query defined.
"""

import argparse
import json
import sys
from typing import List, Optional

from pydantic import ValidationError

from irmetrics.evaluation import Evaluator
from irmetrics.exceptions import IRMetricsError
from irmetrics.formats.trec import read_qrels, read_run
from irmetrics.models.common import is_defined
from irmetrics.utils.config import load_config_from_dict
from irmetrics.utils.hashing import compute_checksum
from irmetrics.utils.logger import get_logger, set_level, set_stream

logger = get_logger("irmetrics.cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="irm",
        description="Evaluate search results with IR metrics."
    )
    parser.add_argument("qrels", help="Query relevance data in TREC format")
    parser.add_argument("results", help="Query results in TREC format")
    parser.add_argument(
        "-m", "--metric",
        action="append",
        dest="metrics",
        help="Metric to compute, repeatable (e.g. P@10, ndcg@20, map, RBP:95)"
    )
    parser.add_argument("--per-query", action="store_true", help="Also print per-query scores")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    parser.add_argument("--workers", type=int, dest="max_workers", help="Parallel workers")
    parser.add_argument("--chunk-size", type=int, help="Queries per worker task")
    parser.add_argument("--executor", choices=["thread", "process"], help="Worker pool type")
    parser.add_argument(
        "--no-unretrieved",
        action="store_false",
        dest="include_unretrieved",
        default=None,
        help="Only evaluate queries present in the run"
    )
    parser.add_argument("--aggregation", choices=["mean", "gmean"], default="mean")
    parser.add_argument("--skip-invalid", action="store_true",
                        help="Skip queries with duplicate judgments/documents instead of failing")
    parser.add_argument("--sort-by-score", action="store_true",
                        help="Rank run lines by descending score instead of file order")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser.parse_args(argv)


def _format(value) -> str:
    return f"{value:.4f}" if is_defined(value) else "n/a"


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    # stdout carries results only
    previous = set_stream(sys.stderr)
    try:
        return run(args)
    finally:
        if previous is not None:
            set_stream(previous)


def run(args: argparse.Namespace) -> int:
    """Evaluate every run in the results file and print the report."""
    set_level(args.log_level)

    # Only include CLI values that are actually set
    overrides = {
        k: v for k, v in {
            "metrics": args.metrics,
            "max_workers": args.max_workers,
            "chunk_size": args.chunk_size,
            "executor": args.executor,
            "include_unretrieved": args.include_unretrieved,
        }.items() if v is not None
    }

    try:
        settings = load_config_from_dict({"evaluation": overrides, "log_level": args.log_level})
        strict = not args.skip_invalid
        judgments = read_qrels(args.qrels, strict=strict)
        runs = read_run(args.results, sort_by_score=args.sort_by_score, strict=strict)

        checksums = {
            "qrels_sha256": compute_checksum(args.qrels),
            "run_sha256": compute_checksum(args.results),
        }

        exported = {}
        for run_id, run in runs.items():
            logger.info(f"Evaluating run {run_id}")
            evaluator = Evaluator(judgments, run, settings=settings.evaluation)
            result = evaluator.evaluate(aggregation=args.aggregation)
            result.metadata.update(checksums)

            if args.json:
                exported[run_id] = result.export_to_dict()
                continue

            for query_id, reason in result.skipped.items():
                print(f"{run_id}\t{query_id}\tskipped\t{reason}", file=sys.stderr)
            if args.per_query:
                for query_id in result.table.queries:
                    for spec, score in result.table.for_query(query_id).items():
                        print(f"{run_id}\t{query_id}\t{spec.label}\t{_format(score)}")
            for spec, agg in result.summary.items():
                value = _format(agg.value) if agg.has_data else "no data"
                print(f"{run_id}\tall\t{spec.label}\t{value}")

        if args.json:
            print(json.dumps(exported, indent=2))
    except (IRMetricsError, ValidationError, FileNotFoundError) as e:
        print(f"irm: error: {e}", file=sys.stderr)
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())

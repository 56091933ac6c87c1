"""
Chunked batch processing with an optional worker pool.

Items are split into chunks; each chunk is one task. Tasks run inline or on
a thread/process pool with a bounded number in flight, and an abort signal
is checked before each new task is started. Chunks that finished before an
abort keep their results; chunks never started have none.
"""
from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, Protocol, TypeVar

from tqdm import tqdm

from irmetrics.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')
R = TypeVar('R')

EXECUTORS = ("thread", "process")


class AbortSignal(Protocol):
    """Anything with an is_set() method, e.g. threading.Event."""

    def is_set(self) -> bool: ...


@dataclass
class ChunkedOutcome(Generic[T, R]):
    """Results of process_chunks, indexed by chunk."""
    chunks: List[List[T]]
    results: List[Optional[R]]
    completed: List[bool]
    aborted: bool = False

    def finished(self) -> List[R]:
        """Results of completed chunks, in chunk order."""
        return [r for r, ok in zip(self.results, self.completed) if ok]

    def unfinished_items(self) -> List[T]:
        """Items whose chunk never completed."""
        return [item for chunk, ok in zip(self.chunks, self.completed) if not ok for item in chunk]


def chunk_items(items: List[T], chunk_size: int) -> List[List[T]]:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


def process_chunks(
    items: List[T],
    process_func: Callable[[List[T]], R],
    chunk_size: int = 64,
    max_workers: int = 1,
    executor: str = "thread",
    abort_event: Optional[AbortSignal] = None,
    show_progress: bool = False,
    desc: str = "Processing chunks"
) -> ChunkedOutcome[T, R]:
    """
    Apply process_func to each chunk of items.

    Args:
        items: Items to process
        process_func: Function taking one chunk (a list of items). Must be
            picklable when executor='process'
        chunk_size: Items per chunk
        max_workers: 1 runs inline; more uses a pool
        executor: 'thread' or 'process'
        abort_event: Checked before each chunk starts
        show_progress: Show a tqdm progress bar over chunks
        desc: Progress bar label

    Returns:
        ChunkedOutcome with per-chunk results

    Raises:
        ValueError: On a bad executor name or chunk size
        Exception: Whatever process_func raises is propagated

    Example:
        >>> outcome = process_chunks(queries, evaluate_chunk, chunk_size=32, max_workers=4)
        >>> rows = [row for chunk_rows in outcome.finished() for row in chunk_rows]
    """
    if executor not in EXECUTORS:
        raise ValueError(f"Unknown executor: {executor} (expected one of {EXECUTORS})")

    chunks = chunk_items(items, chunk_size)
    outcome: ChunkedOutcome[T, R] = ChunkedOutcome(
        chunks=chunks,
        results=[None] * len(chunks),
        completed=[False] * len(chunks)
    )
    if not chunks:
        return outcome

    progress = tqdm(total=len(chunks), desc=desc, disable=not show_progress)
    try:
        if max_workers <= 1:
            for index, chunk in enumerate(chunks):
                if _should_abort(abort_event):
                    outcome.aborted = True
                    break
                outcome.results[index] = process_func(chunk)
                outcome.completed[index] = True
                logger.debug(f"Chunk {index + 1}/{len(chunks)} done ({len(chunk)} items)")
                progress.update(1)
        else:
            _run_pool(outcome, process_func, max_workers, executor, abort_event, progress)
    finally:
        progress.close()

    if outcome.aborted:
        done = sum(outcome.completed)
        logger.warning(f"Aborted after {done}/{len(chunks)} chunks")

    return outcome


def _run_pool(
    outcome: ChunkedOutcome,
    process_func: Callable[[List[Any]], Any],
    max_workers: int,
    executor: str,
    abort_event: Optional[AbortSignal],
    progress: tqdm
) -> None:
    pool_cls = ProcessPoolExecutor if executor == "process" else ThreadPoolExecutor
    window = max_workers * 2
    pending: Dict[Future, int] = {}
    next_index = 0
    total = len(outcome.chunks)

    logger.debug(f"Starting {executor} pool with {max_workers} workers for {total} chunks")

    with pool_cls(max_workers=max_workers) as pool:
        while pending or (next_index < total and not outcome.aborted):
            while not outcome.aborted and next_index < total and len(pending) < window:
                if _should_abort(abort_event):
                    outcome.aborted = True
                    break
                future = pool.submit(process_func, outcome.chunks[next_index])
                pending[future] = next_index
                next_index += 1

            if not pending:
                break

            finished, _ = wait(pending, return_when=FIRST_COMPLETED)
            for future in finished:
                index = pending.pop(future)
                outcome.results[index] = future.result()
                outcome.completed[index] = True
                logger.debug(f"Chunk {index + 1}/{total} done")
                progress.update(1)


def _should_abort(abort_event: Optional[AbortSignal]) -> bool:
    return abort_event is not None and abort_event.is_set()

"""
Tests for batch processing, hashing and logging utilities.
"""
import hashlib
import io
import logging
import threading

import pytest

from irmetrics.utils.batch import chunk_items, process_chunks
from irmetrics.utils.hashing import compute_checksum, fingerprint_scores
from irmetrics.utils.logger import get_logger, set_level, set_stream, setup_logger


# Batch processing

def test_chunk_items():
    assert chunk_items([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert chunk_items([], 3) == []

    with pytest.raises(ValueError):
        chunk_items([1], 0)


def test_process_chunks_inline():
    outcome = process_chunks(list(range(10)), sum, chunk_size=3)

    assert outcome.finished() == [3, 12, 21, 9]
    assert not outcome.aborted
    assert outcome.unfinished_items() == []


@pytest.mark.parametrize("executor", ["thread", "process"])
def test_process_chunks_pool_keeps_chunk_order(executor):
    outcome = process_chunks(list(range(50)), sum, chunk_size=4, max_workers=3, executor=executor)

    assert outcome.finished() == [sum(range(i, min(i + 4, 50))) for i in range(0, 50, 4)]


def test_process_chunks_empty():
    outcome = process_chunks([], sum)

    assert outcome.chunks == []
    assert outcome.finished() == []


def test_process_chunks_abort():
    abort = threading.Event()
    abort.set()

    inline = process_chunks(list(range(6)), sum, chunk_size=2, abort_event=abort)
    pooled = process_chunks(list(range(6)), sum, chunk_size=2, max_workers=2, abort_event=abort)

    for outcome in (inline, pooled):
        assert outcome.aborted
        assert outcome.finished() == []
        assert outcome.unfinished_items() == list(range(6))


def test_process_chunks_propagates_errors():
    def fail(chunk):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        process_chunks([1, 2], fail)
    with pytest.raises(RuntimeError, match="boom"):
        process_chunks([1, 2], fail, chunk_size=1, max_workers=2)


def test_process_chunks_unknown_executor():
    with pytest.raises(ValueError, match="Unknown executor"):
        process_chunks([1], sum, executor="gpu")


# Hashing

def test_compute_checksum(tmp_path):
    path = tmp_path / "qrels.txt"
    path.write_bytes(b"q1 0 d1 1\n" * 5000)

    expected = hashlib.sha256(b"q1 0 d1 1\n" * 5000).hexdigest()
    assert compute_checksum(path) == expected
    assert compute_checksum(str(path), algorithm="md5") == hashlib.md5(path.read_bytes()).hexdigest()


def test_compute_checksum_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        compute_checksum(tmp_path / "missing.txt")

    path = tmp_path / "file.txt"
    path.write_text("x")
    with pytest.raises(ValueError, match="Unsupported hash algorithm"):
        compute_checksum(path, algorithm="not-a-hash")


def test_fingerprint_scores():
    rows = [("q1", "P@5", 0.4), ("q2", "recall@5", "n/a")]

    assert fingerprint_scores(rows) == fingerprint_scores(list(rows))
    assert fingerprint_scores(rows) != fingerprint_scores(rows[::-1])
    assert fingerprint_scores(rows) != fingerprint_scores([("q1", "P@5", 0.4000000000000001)] + rows[1:])


# Logging

def test_setup_logger(tmp_path):
    log_file = tmp_path / "logs" / "irm.log"
    logger = setup_logger("irmetrics.test_file", level="DEBUG", log_file=log_file)

    logger.debug("Evaluating 3 queries")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert logger.propagate is False
    assert "Evaluating 3 queries" in log_file.read_text()

    for handler in logger.handlers:
        handler.close()


def test_get_logger_reads_environment(monkeypatch):
    monkeypatch.setenv("IRM_LOG_LEVEL", "ERROR")

    assert get_logger("irmetrics.test_env").level == logging.ERROR


def test_set_level():
    first = get_logger("irmetrics.test_a")
    second = get_logger("irmetrics.test_b")
    other = logging.getLogger("unrelated.test")
    other.setLevel(logging.INFO)

    set_level("ERROR")

    assert first.level == logging.ERROR
    assert second.level == logging.ERROR
    assert other.level == logging.INFO

    set_level("INFO")


def test_set_stream_moves_console_handlers(tmp_path):
    console = get_logger("irmetrics.test_stream")
    to_file = setup_logger("irmetrics.test_stream_file", log_file=tmp_path / "irm.log")
    buffer = io.StringIO()

    previous = set_stream(buffer)
    try:
        console.warning("Dropping judgments for query 'q2'")
    finally:
        set_stream(previous)

    assert "Dropping judgments for query 'q2'" in buffer.getvalue()
    file_handlers = [h for h in to_file.handlers if isinstance(h, logging.FileHandler)]
    assert file_handlers and all(h.stream is not buffer for h in file_handlers)

    for handler in to_file.handlers:
        handler.close()

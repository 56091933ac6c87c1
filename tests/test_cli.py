"""
Tests for the irm command-line driver.
"""
import json
import logging
import subprocess
import sys
from pathlib import Path

import pytest

from irmetrics import cli
from irmetrics.cli import main
from irmetrics.utils.logger import set_level

ROOT = Path(__file__).resolve().parents[1]

QRELS = """\
401 0 FBIS3-10082 1
401 0 FBIS3-10169 0
401 0 FBIS3-10243 2
402 0 FT921-4420 1
"""

RUN = """\
401 Q0 FBIS3-10169 1 12.5 bm25
401 Q0 FBIS3-10082 2 11.0 bm25
401 Q0 FBIS3-10243 3 9.25 bm25
402 Q0 FT921-4420 1 3.0 bm25
401 Q0 FBIS3-10243 1 20.0 dfr
"""


@pytest.fixture
def files(tmp_path):
    qrels_path = tmp_path / "qrels.txt"
    run_path = tmp_path / "run.txt"
    qrels_path.write_text(QRELS)
    run_path.write_text(RUN)
    return str(qrels_path), str(run_path)


def test_summary_output(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@2", "-m", "map"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert "bm25\tall\tP@2\t0.7500" in lines
    assert "bm25\tall\tmap\t0.7917" in lines
    assert "dfr\tall\tP@2\t0.5000" in lines


def test_per_query_output(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@2", "--per-query", "--no-unretrieved"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert "bm25\t401\tP@2\t0.5000" in lines
    assert "bm25\t402\tP@2\t1.0000" in lines
    assert "dfr\t401\tP@2\t1.0000" in lines
    assert "dfr\tall\tP@2\t1.0000" in lines
    assert not any(line.startswith("dfr\t402") for line in lines)


def test_undefined_values(tmp_path, capsys):
    qrels_path = tmp_path / "qrels.txt"
    run_path = tmp_path / "run.txt"
    qrels_path.write_text("q1 0 d1 0\n")
    run_path.write_text("q1 Q0 d1 1 1.0 r\n")

    assert main([str(qrels_path), str(run_path), "-m", "recall@5", "--per-query"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert "r\tq1\trecall@5\tn/a" in lines
    assert "r\tall\trecall@5\tno data" in lines


def test_json_output(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@2", "--json"]) == 0

    exported = json.loads(capsys.readouterr().out)
    assert set(exported) == {"bm25", "dfr"}
    assert exported["bm25"]["metrics"]["P@2"]["value"] == pytest.approx(0.75)
    assert exported["bm25"]["metadata"]["run"] == "bm25"
    assert len(exported["bm25"]["metadata"]["qrels_sha256"]) == 64


def test_workers(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@2", "--workers", "2", "--chunk-size", "1"]) == 0
    assert "bm25\tall\tP@2\t0.7500" in capsys.readouterr().out.splitlines()


def test_unknown_metric(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@0"]) == 2
    assert "irm: error" in capsys.readouterr().err


def test_malformed_qrels(tmp_path, files, capsys):
    _, run = files
    bad = tmp_path / "bad.txt"
    bad.write_text("401 0 FBIS3-10082\n")

    assert main([str(bad), run]) == 2
    assert "too few fields" in capsys.readouterr().err


def test_missing_file(files, capsys):
    qrels, _ = files

    assert main([qrels, "/nonexistent/run.txt"]) == 2
    assert "not found" in capsys.readouterr().err


def test_skip_invalid(tmp_path, capsys):
    qrels_path = tmp_path / "qrels.txt"
    run_path = tmp_path / "run.txt"
    qrels_path.write_text("q1 0 d1 1\nq2 0 d1 1\nq2 0 d1 0\n")
    run_path.write_text("q1 Q0 d1 1 1.0 r\nq2 Q0 d1 1 1.0 r\n")

    assert main([str(qrels_path), str(run_path), "-m", "P@1"]) == 2
    capsys.readouterr()

    assert main([str(qrels_path), str(run_path), "-m", "P@1", "--skip-invalid"]) == 0
    captured = capsys.readouterr()
    assert "r\tall\tP@1\t1.0000" in captured.out.splitlines()
    assert "r\tq2\tskipped" in captured.err


def test_json_output_stays_clean_with_warnings(tmp_path):
    qrels_path = tmp_path / "qrels.txt"
    run_path = tmp_path / "run.txt"
    qrels_path.write_text("q1 0 d1 1\nq2 0 d1 1\nq2 0 d1 0\n")
    run_path.write_text("q1 Q0 d1 1 1.0 r\nq2 Q0 d1 1 1.0 r\n")

    completed = subprocess.run(
        [sys.executable, "-m", "irmetrics.cli", str(qrels_path), str(run_path),
         "-m", "P@1", "--json", "--skip-invalid"],
        capture_output=True,
        text=True,
        cwd=ROOT
    )

    assert completed.returncode == 0, completed.stderr
    exported = json.loads(completed.stdout)
    assert exported["r"]["metrics"]["P@1"]["value"] == pytest.approx(1.0)
    assert "Dropping judgments" in completed.stderr


def test_logs_go_to_stderr(files, capsys):
    qrels, run = files

    assert main([qrels, run, "-m", "P@2", "--json", "--log-level", "INFO"]) == 0

    captured = capsys.readouterr()
    json.loads(captured.out)
    assert "Evaluating run bm25" in captured.err


def test_cli_logger_follows_log_level():
    # Named explicitly so python -m irmetrics.cli does not log as __main__
    assert cli.logger.name == "irmetrics.cli"

    set_level("ERROR")
    try:
        assert cli.logger.level == logging.ERROR
    finally:
        set_level("WARNING")


def test_sort_by_score(tmp_path, capsys):
    qrels_path = tmp_path / "qrels.txt"
    run_path = tmp_path / "run.txt"
    qrels_path.write_text("q1 0 dB 1\n")
    run_path.write_text("q1 Q0 dA 1 0.1 r\nq1 Q0 dB 2 0.9 r\n")

    assert main([str(qrels_path), str(run_path), "-m", "P@1"]) == 0
    assert "r\tall\tP@1\t0.0000" in capsys.readouterr().out.splitlines()

    assert main([str(qrels_path), str(run_path), "-m", "P@1", "--sort-by-score"]) == 0
    assert "r\tall\tP@1\t1.0000" in capsys.readouterr().out.splitlines()

"""Tests for the pipeline orchestrator (scivault.__main__)."""

import subprocess
import sys
from unittest.mock import patch

import pytest

from scivault.__main__ import STEPS, cleanup_batch, main, make_batches, run_step


def ok(returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode)


# ── Batches ──────────────────────────────────────────────────────────


def test_make_batches_even_and_remainder():
    assert make_batches(1, 6, 2) == [[1, 2], [3, 4], [5, 6]]
    assert make_batches(3, 7, 2) == [[3, 4], [5, 6], [7]]


def test_make_batches_without_size_is_one_batch():
    assert make_batches(2, 4, None) == [[2, 3, 4]]


def test_make_batches_single_page():
    assert make_batches(5, 5, 10) == [[5]]


# ── Steps ────────────────────────────────────────────────────────────


def test_step_order():
    assert [module for module, _ in STEPS] == [
        "fetch_dois",
        "fetch_pdfs",
        "enrich",
        "upload_metadata",
        "upload_pdfs",
    ]


def test_run_step_invokes_module_for_one_page():
    with patch("scivault.__main__.subprocess.run", return_value=ok(3)) as run:
        assert run_step("enrich", 7) == 3
    cmd = run.call_args.args[0]
    assert cmd == [sys.executable, "-m", "scivault.enrich", "--start-page=7", "--end-page=7"]


def test_main_runs_every_step_per_page(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    with patch("scivault.__main__.subprocess.run", return_value=ok()) as run:
        main(["--start-page=1", "--end-page=2"])

    invoked = [(c.args[0][2], c.args[0][3]) for c in run.call_args_list]
    expected = [
        (f"scivault.{module}", f"--start-page={page}") for page in (1, 2) for module, _ in STEPS
    ]
    assert invoked == expected


def test_main_stops_on_first_failing_step(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    # fetch_dois and fetch_pdfs succeed for page 1, enrich fails
    results = [ok(), ok(), ok(1)]
    with patch("scivault.__main__.subprocess.run", side_effect=results) as run:
        with pytest.raises(SystemExit) as exc_info:
            main(["--start-page=1", "--end-page=3"])

    assert exc_info.value.code == 1
    assert run.call_count == 3
    assert run.call_args.args[0][2] == "scivault.enrich"


def test_main_rejects_reversed_range(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    with patch("scivault.__main__.subprocess.run") as run:
        with pytest.raises(SystemExit) as exc_info:
            main(["--start-page=4", "--end-page=1"])
    assert exc_info.value.code == 2
    run.assert_not_called()


# ── Cleanup ──────────────────────────────────────────────────────────


def test_cleanup_batch_removes_only_pdfs(config):
    page_dir = config.pdf_page_dir(1)
    page_dir.mkdir(parents=True)
    (page_dir / "10.1%2Fa.pdf").write_bytes(b"x")
    (page_dir / "basic_metadata.json").write_text("[]")
    (page_dir / "failed_log_page_1.txt").write_text("10.1/b\n")

    assert cleanup_batch([1, 2], config) == 1
    assert sorted(p.name for p in page_dir.iterdir()) == [
        "basic_metadata.json",
        "failed_log_page_1.txt",
    ]


def test_main_cleans_up_after_each_batch(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    with patch("scivault.__main__.subprocess.run", return_value=ok()), patch(
        "scivault.__main__.cleanup_batch"
    ) as cleanup:
        main(["--start-page=1", "--end-page=3", "--batch-size=2"])

    assert [c.args[0] for c in cleanup.call_args_list] == [[1, 2], [3]]


def test_main_without_batch_size_keeps_files(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIVAULT_WORKSPACE", str(tmp_path))
    with patch("scivault.__main__.subprocess.run", return_value=ok()), patch(
        "scivault.__main__.cleanup_batch"
    ) as cleanup:
        main(["--start-page=1", "--end-page=2"])
    cleanup.assert_not_called()

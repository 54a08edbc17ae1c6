"""
Tests for the command line entry point.
"""

from unittest.mock import MagicMock, patch

import pytest

from ghsync.main import EXIT_CONFIG, EXIT_FAILURES, EXIT_OK, build_parser, main
from ghsync.models import MirrorAction, RunSummary, SyncOutcome


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for key in ("GITHUB_USER", "GITHUB_TOKEN", "SYNC_BASE_DIR", "SYNC_THREADS", "LOG_LEVEL", "LOG_FILE"):
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "ghsync.toml"
    path.write_text('organizations = ["acme"]\nthreads = 2\n')
    return path


def run_with(summary, argv):
    with patch("ghsync.main.SyncOrchestrator") as mock_orchestrator, \
         patch("ghsync.main.GitHubClient") as mock_client:
        mock_client.return_value.__enter__.return_value = MagicMock()
        mock_orchestrator.return_value.sync_targets.return_value = summary
        code = main(argv)
    return code, mock_orchestrator


def test_parser_requires_config():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_main_success(config_file, tmp_path):
    summary = RunSummary()
    summary.record(SyncOutcome.synced("acme/a", MirrorAction.CLONED))

    code, mock_orchestrator = run_with(
        summary,
        ["-c", str(config_file), "-d", str(tmp_path / "out"), "--env-file", str(tmp_path / "none.env")],
    )

    assert code == EXIT_OK
    sync_config = mock_orchestrator.call_args[0][1]
    assert sync_config.base_dir == str(tmp_path / "out")
    assert sync_config.threads == 2


def test_main_reports_failures(config_file, tmp_path, capsys):
    summary = RunSummary()
    summary.record(SyncOutcome.failed("acme/broken", "acme/broken: clone failed: denied"))

    code, _ = run_with(summary, ["-c", str(config_file), "-t", "3", "--env-file", str(tmp_path / "none.env")])

    assert code == EXIT_FAILURES
    captured = capsys.readouterr()
    output = captured.err + captured.out
    assert "FAILED acme/broken" in output
    assert "Processed 1 repositories: 0 synced, 1 failed, 0 skipped" in output


def test_main_config_error(tmp_path, capsys):
    code = main(["-c", str(tmp_path / "missing.toml"), "--env-file", str(tmp_path / "none.env")])

    assert code == EXIT_CONFIG
    captured = capsys.readouterr()
    assert captured.out == ""
    error_lines = [line for line in captured.err.splitlines() if "Configuration error" in line]
    assert len(error_lines) == 1
    assert "ERROR" in error_lines[0]
    assert "ghsync.main" in error_lines[0]


def test_main_listing_failure_is_not_counted_as_processed(config_file, tmp_path, capsys):
    summary = RunSummary()
    summary.record(SyncOutcome.synced("acme/a", MirrorAction.UPDATED))
    summary.record_listing_failure("orgs/broken", "listing failed: boom")

    code, _ = run_with(summary, ["-c", str(config_file), "--env-file", str(tmp_path / "none.env")])

    assert code == EXIT_FAILURES
    output = capsys.readouterr().err
    assert "FAILED orgs/broken: listing failed: boom" in output
    assert "Processed 1 repositories: 1 synced, 1 failed, 0 skipped" in output


def test_main_rejects_zero_threads(config_file, tmp_path):
    code = main(["-c", str(config_file), "-t", "0", "--env-file", str(tmp_path / "none.env")])

    assert code == EXIT_CONFIG

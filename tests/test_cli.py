from __future__ import annotations

import json

from typer.testing import CliRunner

from quickcov.cli import app
from quickcov.store import CacheStore


def report_for(project, s: dict) -> dict:
    return {project.path("src/x.js"): {"s": s, "f": {"0": 1}, "b": {"0": [0, 1]}}}


def test_first_run_creates_cache(tiny_project) -> None:
    tiny_project.set_report(report_for(tiny_project, {"0": 1, "1": 0}))

    result = CliRunner().invoke(app, [], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Cache file not found" in result.output
    assert "1 / 2" in result.output
    assert "50.00%" in result.output
    assert tiny_project.runner_calls() == [["--coverage"]]

    snapshot = CacheStore(tiny_project.root / ".quick-cov-report.json").load()
    assert snapshot.source_files[tiny_project.path("src/x.js")].s.percentage == 50.0
    assert list(snapshot.test_files) == [tiny_project.path("src/x.test.js")]
    assert snapshot.first_run_elapsed_time is not None


def test_second_run_without_changes_skips_runner(tiny_project) -> None:
    tiny_project.set_report(report_for(tiny_project, {"0": 1, "1": 0}))
    runner = CliRunner()
    runner.invoke(app, ["run"], catch_exceptions=False)
    cache = tiny_project.root / ".quick-cov-report.json"
    before = cache.read_bytes()

    result = runner.invoke(app, ["run"], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "No changes were found" in result.output
    assert len(tiny_project.runner_calls()) == 1
    assert cache.read_bytes() == before


def test_changed_test_is_rerun_and_delta_shown(tiny_project) -> None:
    tiny_project.set_report(report_for(tiny_project, {"0": 1, "1": 0}))
    runner = CliRunner()
    runner.invoke(app, [], catch_exceptions=False)

    tiny_project.write("src/x.test.js", "test('x', () => expect(x(false)).toBe(0));\n")
    tiny_project.set_report(report_for(tiny_project, {"0": 1, "1": 1}))
    result = runner.invoke(app, [], catch_exceptions=False)

    assert result.exit_code == 0, result.output
    assert "Changes found on following files" in result.output
    assert tiny_project.path("src/x.test.js") in result.output
    assert "(+50.00%)" in result.output
    assert tiny_project.runner_calls()[-1] == [tiny_project.path("src/x.test.js"), "--coverage", "--bail"]


def test_status_and_clear(tiny_project) -> None:
    runner = CliRunner()

    missing = runner.invoke(app, ["status"])
    assert missing.exit_code == 1
    assert "No cache found" in missing.output

    tiny_project.set_report(report_for(tiny_project, {"0": 1}))
    runner.invoke(app, [], catch_exceptions=False)

    status = runner.invoke(app, ["status"], catch_exceptions=False)
    assert status.exit_code == 0, status.output
    assert "1 source file(s), 1 test file(s)" in status.output
    assert "100.00%" in status.output

    cleared = runner.invoke(app, ["clear"], catch_exceptions=False)
    assert "Cache removed." in cleared.output
    assert not (tiny_project.root / ".quick-cov-report.json").exists()


def test_malformed_report_fails_without_writing_cache(tiny_project) -> None:
    tiny_project.write("next-report.json", json.dumps({"x": "nope"}))

    result = CliRunner().invoke(app, [])

    assert result.exit_code == 1
    assert not (tiny_project.root / ".quick-cov-report.json").exists()


def test_missing_runner_is_reported(tiny_project) -> None:
    tiny_project.write(
        ".quick-cov.yaml",
        f'runner:\n  command: ["{(tiny_project.root / "no-such-runner").as_posix()}"]\n',
    )

    result = CliRunner().invoke(app, [])

    assert result.exit_code == 1
    assert not (tiny_project.root / ".quick-cov-report.json").exists()


def test_failing_runner_aborts_when_merge_on_failure_disabled(tiny_project) -> None:
    config = (tiny_project.root / ".quick-cov.yaml").read_text(encoding="utf-8")
    tiny_project.write(".quick-cov.yaml", config + "  merge_on_failure: false\n")
    tiny_project.set_report(report_for(tiny_project, {"0": 1}))
    tiny_project.set_exit_code(1)

    result = CliRunner().invoke(app, [])

    assert result.exit_code == 1
    assert len(tiny_project.runner_calls()) == 1
    assert not (tiny_project.root / ".quick-cov-report.json").exists()


def test_module_entry_point(tiny_project) -> None:
    tiny_project.set_report(report_for(tiny_project, {"0": 1, "1": 0}))

    completed = tiny_project.run_cli()

    assert completed.returncode == 0, completed.stderr
    assert "Starting quick-cov" in completed.stdout
    assert (tiny_project.root / ".quick-cov-report.json").exists()


def test_unusable_test_pattern_is_reported(tiny_project) -> None:
    config = (tiny_project.root / ".quick-cov.yaml").read_text(encoding="utf-8")
    tiny_project.write(".quick-cov.yaml", config + 'tests:\n  test_match: ["<rootDir>/"]\n')

    result = CliRunner().invoke(app, [])

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert tiny_project.runner_calls() == []

from __future__ import annotations

import json
import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


FAKE_RUNNER = textwrap.dedent(
    """
    from __future__ import annotations

    import json
    import sys
    from pathlib import Path

    root = Path.cwd()
    calls_path = root / "runner-calls.json"
    calls = json.loads(calls_path.read_text(encoding="utf-8")) if calls_path.exists() else []
    calls.append(sys.argv[1:])
    calls_path.write_text(json.dumps(calls), encoding="utf-8")

    report = root / "next-report.json"
    target = root / "coverage" / "coverage-final.json"
    target.parent.mkdir(parents=True, exist_ok=True)
    if report.exists():
        target.write_text(report.read_text(encoding="utf-8"), encoding="utf-8")

    exit_code = root / "next-exit-code"
    sys.exit(int(exit_code.read_text(encoding="utf-8")) if exit_code.exists() else 0)
    """
).lstrip()


@dataclass(slots=True)
class TinyProject:
    """Fixture payload representing a JavaScript project driven by a fake runner."""

    root: Path
    runner_script: Path

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def path(self, relative: str) -> str:
        return (self.root / relative).as_posix()

    def set_report(self, report: Dict[str, Any]) -> None:
        """Coverage report the fake runner writes on its next invocation."""
        self.write("next-report.json", json.dumps(report))

    def set_exit_code(self, code: int) -> None:
        self.write("next-exit-code", str(code))

    def runner_calls(self) -> List[List[str]]:
        calls_path = self.root / "runner-calls.json"
        if not calls_path.exists():
            return []
        return json.loads(calls_path.read_text(encoding="utf-8"))

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m quickcov.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "quickcov.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def tiny_project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> TinyProject:
    """Create a small project with one source file, one test and a fake runner."""

    root = (tmp_path / "tiny-project").resolve()
    root.mkdir()
    runner_script = root / "tools" / "fake_runner.py"
    runner_script.parent.mkdir()
    runner_script.write_text(FAKE_RUNNER, encoding="utf-8")

    project = TinyProject(root=root, runner_script=runner_script)
    project.write("src/x.js", "export const x = (flag) => (flag ? 1 : 0);\n")
    project.write("src/x.test.js", "test('x', () => expect(x(true)).toBe(1));\n")
    project.write(
        ".quick-cov.yaml",
        textwrap.dedent(
            f"""
            runner:
              command: ["{Path(sys.executable).as_posix()}", "{runner_script.as_posix()}"]
            """
        ).lstrip(),
    )

    monkeypatch.chdir(root)
    return project

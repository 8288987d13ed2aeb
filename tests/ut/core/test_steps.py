"""构建步骤执行器测试"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock

from depprep.core.dep.steps import StepRunner
from depprep.core.models import BuildStep, Command
from depprep.utils.shell import CommandResult

PY = sys.executable


def _py(name: str, code: str, **echo: bool) -> BuildStep:
    return BuildStep(name=name, command=Command(PY, ["-c", code], **echo))


class TestStepRunner:
    def test_empty_is_success(self, tmp_path: Path, reporter) -> None:
        assert StepRunner(reporter=reporter).run([], tmp_path)
        assert reporter.events == []

    def test_no_command_only_reports_name(self, tmp_path: Path, reporter) -> None:
        assert StepRunner(reporter=reporter).run([BuildStep("note")], tmp_path)
        assert reporter.events == [("step", "note", "", "", "")]

    def test_output_hidden_without_echo(self, tmp_path: Path, reporter) -> None:
        step = _py("quiet", "print('out')")
        assert StepRunner(reporter=reporter).run([step], tmp_path)
        assert reporter.events == [("step", "quiet", "", "", "")]

    def test_echo_stdout_only(self, tmp_path: Path, reporter) -> None:
        code = "import sys; print('out'); print('err', file=sys.stderr)"
        step = _py("loud", code, echo_stdout=True)
        assert StepRunner(reporter=reporter).run([step], tmp_path)
        assert reporter.events[-1] == ("step", "loud", "out\n", "", "")

    def test_failure_surfaces_both_streams(self, tmp_path: Path, reporter) -> None:
        """失败时无论 echo 配置都上报 stdout/stderr"""
        code = "import sys; print('o'); print('e', file=sys.stderr); sys.exit(3)"
        assert not StepRunner(reporter=reporter).run([_py("bad", code)], tmp_path)
        assert reporter.events[-1] == ("step", "bad", "o\n", "e\n", "")

    def test_fail_fast(self, tmp_path: Path, reporter) -> None:
        marker = tmp_path / "ran"
        steps = [
            _py("first", "import sys; sys.exit(1)"),
            _py("second", f"open({str(marker)!r}, 'w').close()"),
        ]
        assert not StepRunner(reporter=reporter).run(steps, tmp_path)
        assert "second" not in reporter.names("step")
        assert not marker.exists()

    def test_runs_in_cwd(self, tmp_path: Path, reporter) -> None:
        step = _py("touch", "open('here', 'w').close()")
        assert StepRunner(reporter=reporter).run([step], tmp_path)
        assert (tmp_path / "here").exists()

    def test_args_not_shell_interpolated(self, tmp_path: Path, reporter) -> None:
        step = BuildStep("argv", Command(PY, ["-c", "import sys; print(sys.argv[1])", "$HOME; echo hi"], echo_stdout=True))
        assert StepRunner(reporter=reporter).run([step], tmp_path)
        assert reporter.events[-1][2] == "$HOME; echo hi\n"

    def test_missing_executable_reported_as_exception(self, tmp_path: Path, reporter) -> None:
        step = BuildStep("ghost", Command("definitely-not-a-real-binary-xyz"))
        assert not StepRunner(reporter=reporter).run([step], tmp_path)
        name, _, _, exc = reporter.events[-1][1:]
        assert name == "ghost"
        assert "definitely-not-a-real-binary-xyz" in exc

    def test_injected_executor(self, tmp_path: Path, reporter) -> None:
        executor = MagicMock()
        executor.execute.return_value = CommandResult(0, "ok", "")
        step = BuildStep("make", Command("make", ["-j4"]))
        assert StepRunner(executor, reporter).run([step], tmp_path)
        executor.execute.assert_called_once_with(["make", "-j4"], cwd=tmp_path)

    def test_undecodable_output_replaced(self, tmp_path: Path, reporter) -> None:
        """非 UTF-8 输出不会中断执行，无法解码的字节替换为 U+FFFD"""
        code = "import sys; sys.stdout.buffer.write(b'\\xff\\xfe ok'); sys.stdout.flush()"
        assert StepRunner(reporter=reporter).run([_py("bytes", code, echo_stdout=True)], tmp_path)
        stdout = reporter.events[-1][2]
        assert stdout.endswith(" ok")
        assert "�" in stdout

    def test_undecodable_output_on_failure(self, tmp_path: Path, reporter) -> None:
        code = "import sys; sys.stderr.buffer.write(b'\\xff'); sys.exit(2)"
        assert not StepRunner(reporter=reporter).run([_py("bytes", code)], tmp_path)
        assert reporter.events[-1][3] == "�"

    def test_nul_in_argv_reported_as_exception(self, tmp_path: Path, reporter) -> None:
        step = BuildStep("nul", Command(PY, ["-c", "print('a\0b')"]))
        assert not StepRunner(reporter=reporter).run([step], tmp_path)
        name, _, _, exc = reporter.events[-1][1:]
        assert name == "nul"
        assert exc

import os

import mock
import pytest

from blackroad.utils import (
    CmdExecutionError,
    Timer,
    cmd,
    format_cmd,
    retry,
    spawn,
    stream,
    which,
)


def test_cmd_returns_output():
    assert cmd(["echo", "hello"]) == ("hello\n", "")


def test_cmd_raises_on_failure():
    with pytest.raises(CmdExecutionError) as e:
        cmd(["sh", "-c", "echo out; echo err >&2; exit 3"])
    assert e.value.returncode == 3
    assert e.value.stdout == "out\n"
    assert e.value.stderr == "err\n"
    assert e.value.cmd == "sh -c 'echo out; echo err >&2; exit 3'"


def test_cmd_ignores_returncode_if_asked():
    assert cmd(["sh", "-c", "echo out; exit 2"], ignore_returncode=True) == (
        "out\n",
        "",
    )
    assert cmd(["sh", "-c", "exit 2"], acceptable_returncodes=[0, 2]) == (
        "",
        "",
    )


def test_cmd_passes_input():
    assert cmd(["cat"], input="piped") == ("piped", "")
    assert cmd(["cat"], input=b"\x00raw", encoding=None) == (b"\x00raw", b"")


def test_cmd_environment_is_scoped_to_the_call():
    stdout, _ = cmd(
        ["sh", "-c", "echo $BLACKROAD_TEST_VALUE"],
        env={"BLACKROAD_TEST_VALUE": "scoped", "BLACKROAD_UNSET": None},
    )
    assert stdout == "scoped\n"
    assert "BLACKROAD_TEST_VALUE" not in os.environ
    stdout, _ = cmd(["sh", "-c", "echo ${BLACKROAD_UNSET-unset}"])
    assert stdout == "unset\n"


def test_cmd_announces_commands_in_debug_mode_with_secrets_masked(output):
    output.enable_debug = True
    cmd(["echo", "user", "hunter2"], mask=["hunter2"])
    assert output.backend.output == "cmd: echo user ****\n"


def test_cmd_is_quiet_without_debug(output):
    cmd(["echo", "hello"])
    assert output.backend.output == ""


def test_format_cmd_quotes_and_masks():
    assert format_cmd(["vault", "login", "s.x y"]) == "vault login 's.x y'"
    assert format_cmd(["vault", "login", "s.x y"], mask=["s.x y"]) == (
        "vault login ****"
    )


def test_cmd_execution_error_report_skips_empty_streams(output):
    error = CmdExecutionError("aws s3 cp a b", 1, "", "upload failed\n")
    error.report()
    assert output.backend.output == (
        "ERROR: aws s3 cp a b\n"
        "Return code: 1\n"
        "STDERR\n"
        "upload failed\n\n"
    )


def test_spawn_writes_output_to_logfile(workdir):
    process = spawn(
        ["sh", "-c", "echo $GREETING; echo oops >&2"],
        env={"GREETING": "hello"},
        logfile="server.log",
    )
    assert process.wait() == 0
    assert (workdir / "server.log").read_text() == "hello\noops\n"


def test_spawn_appends_to_logfile(workdir):
    (workdir / "server.log").write_text("earlier\n")
    spawn(["echo", "later"], logfile="server.log").wait()
    assert (workdir / "server.log").read_text() == "earlier\nlater\n"


def test_spawn_without_logfile_discards_output(capfd):
    spawn(["echo", "hello"]).wait()
    assert capfd.readouterr().out == ""


def test_stream_raises_on_failure():
    stream(["true"])
    with pytest.raises(CmdExecutionError) as e:
        stream(["false"])
    assert e.value.returncode == 1
    assert e.value.cmd == "false"


def test_which():
    assert which("sh")
    assert which("foobarasdf-54875982") is None


@mock.patch("time.sleep")
def test_retry_returns_first_success(sleep):
    func = mock.Mock(side_effect=[ValueError("1"), ValueError("2"), "done"])
    assert retry(func, attempts=5, delay=3) == "done"
    assert func.call_count == 3
    assert sleep.call_args_list == [mock.call(3), mock.call(3)]


@mock.patch("time.sleep")
def test_retry_gives_up_after_attempts(sleep):
    func = mock.Mock(side_effect=ValueError("never"))
    with pytest.raises(ValueError) as e:
        retry(func, attempts=5, delay=3)
    assert str(e.value) == "never"
    assert func.call_count == 5
    assert sleep.call_count == 4


@mock.patch("time.sleep")
def test_retry_backs_off(sleep):
    func = mock.Mock(side_effect=[KeyError(), KeyError(), KeyError(), 1])
    retry(func, attempts=4, delay=1, backoff=2)
    assert sleep.call_args_list == [mock.call(1), mock.call(2), mock.call(4)]


@mock.patch("time.sleep")
def test_retry_only_retries_given_exceptions(sleep):
    func = mock.Mock(side_effect=KeyError())
    with pytest.raises(KeyError):
        retry(func, exceptions=(ValueError,))
    assert func.call_count == 1
    assert not sleep.called


def test_retry_needs_an_attempt():
    with pytest.raises(ValueError):
        retry(lambda: None, attempts=0)


@mock.patch("time.sleep")
def test_retry_reports_failed_attempts_in_debug_mode(sleep, output):
    output.enable_debug = True
    retry(mock.Mock(side_effect=[ValueError("not yet"), None]), attempts=2)
    assert output.backend.output == "attempt 1/2 failed: not yet\n"


def test_timer_reports_duration_in_debug_mode(output):
    output.enable_debug = True
    with Timer("something"):
        pass
    assert output.backend.output.startswith("something took ")

import os
import shlex
import shutil
import subprocess
import time

from blackroad import ReportingException, output

MASK = "****"


class CmdExecutionError(ReportingException, RuntimeError):
    def __init__(self, cmd, returncode, stdout, stderr):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.args = (cmd, returncode, stdout, stderr)

    def __str__(self):
        return "Exitcode {} while calling: {}".format(self.returncode, self.cmd)

    def report(self):
        output.error(self.cmd)
        output.tabular("Return code", str(self.returncode), red=True)
        for label, content in [("STDOUT", self.stdout), ("STDERR", self.stderr)]:
            if isinstance(content, bytes):
                content = content.decode("utf-8", errors="replace")
            if not content:
                continue
            output.line(label, red=True)
            output.annotate(content)


def format_cmd(cmd, mask=()):
    """Render an argument list for display, hiding the values in `mask`."""
    return " ".join(MASK if arg in mask else shlex.quote(arg) for arg in cmd)


def _environ(env):
    # Per-call overlay on top of our own environment. Unset values are
    # dropped instead of being passed on as "None".
    if env is None:
        return None
    result = os.environ.copy()
    result.update({k: v for k, v in env.items() if v is not None})
    return result


def which(name):
    return shutil.which(name)


def cmd(
    cmd,
    ignore_returncode=False,
    env=None,
    input=None,
    acceptable_returncodes=[0],
    encoding="utf-8",
    mask=(),
):
    display = format_cmd(cmd, mask)
    output.annotate("cmd: {}".format(display), debug=True)
    if input is not None and encoding is not None and isinstance(input, str):
        input = input.encode(encoding)
    process = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        stdin=subprocess.PIPE,
        env=_environ(env),
    )
    stdout, stderr = process.communicate(input)
    if encoding is not None:
        stdout = stdout.decode(encoding, errors="replace")
        stderr = stderr.decode(encoding, errors="replace")
    if process.returncode not in acceptable_returncodes:
        if not ignore_returncode:
            raise CmdExecutionError(display, process.returncode, stdout, stderr)
    return stdout, stderr


def spawn(cmd, env=None, logfile=None, mask=()):
    """Start `cmd` in the background and return the process.

    Output goes to `logfile` (appended) or is discarded.
    """
    output.annotate("spawn: {}".format(format_cmd(cmd, mask)), debug=True)
    if logfile is None:
        return subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=_environ(env),
        )
    with open(logfile, "ab") as log:
        return subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=log,
            stderr=subprocess.STDOUT,
            env=_environ(env),
        )


def stream(cmd, env=None, mask=()):
    """Run `cmd` attached to our terminal."""
    display = format_cmd(cmd, mask)
    output.annotate("cmd: {}".format(display), debug=True)
    returncode = subprocess.call(cmd, env=_environ(env))
    if returncode != 0:
        raise CmdExecutionError(display, returncode, "", "")


def retry(func, attempts=5, delay=3, backoff=1, exceptions=(Exception,)):
    """Call `func` until it returns without raising, at most `attempts`
    times.

    Sleeps `delay` seconds between attempts and multiplies the delay by
    `backoff` after every failure. The exception of the last attempt is
    propagated.

    """
    if attempts < 1:
        raise ValueError("Need at least one attempt.")
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except exceptions as e:
            if attempt == attempts:
                raise
            output.annotate(
                "attempt {}/{} failed: {}".format(attempt, attempts, e),
                debug=True,
            )
            time.sleep(delay)
            delay *= backoff


class Timer(object):
    def __init__(self, note):
        self.duration = 0
        self.note = note

    def __enter__(self):
        self.started = time.time()

    def __exit__(self, exc1, exc2, exc3):
        self.duration = time.time() - self.started
        output.annotate(self.note + " took %fs" % self.duration, debug=True)

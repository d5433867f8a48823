import base64
import contextlib
import os
import subprocess
import tempfile

from blackroad import GPGCallError
from blackroad.utils import CmdExecutionError, cmd, which


class GPG(object):
    """Locate and call the gpg binary."""

    _gpg = None
    GPG_BINARY_CANDIDATES = ["gpg", "gpg2"]

    @classmethod
    def gpg(cls):
        if cls._gpg is not None:
            return cls._gpg
        for gpg in cls.GPG_BINARY_CANDIDATES:
            args = [gpg, "--version"]
            try:
                subprocess.check_call(
                    args, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
                )
            except (subprocess.CalledProcessError, OSError):
                pass
            else:
                cls._gpg = gpg
                return cls._gpg
        raise RuntimeError(
            "Could not find gpg binary."
            " Is GPG installed? I tried looking for: {}".format(
                ", ".join("`{}`".format(x) for x in cls.GPG_BINARY_CANDIDATES)
            )
        )

    @classmethod
    def call(cls, args, input=None):
        args = [cls.gpg()] + args
        try:
            stdout, _ = cmd(args, input=input, encoding=None)
        except CmdExecutionError as e:
            raise GPGCallError.from_context(
                e.cmd, e.returncode, e.stderr
            ) from e
        return stdout


@contextlib.contextmanager
def staged(content):
    """Provide a private temporary file holding `content`.

    The file is removed when the block is left, whether it raised or not.

    """
    fd, path = tempfile.mkstemp(prefix="blackroad-", suffix=".gpg")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        yield path
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(path)


def encrypt(identity, plaintext):
    """Encrypt `plaintext` for `identity` and return it base64 encoded."""
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    encrypted = GPG.call(
        ["--always-trust", "--yes", "--encrypt", "-r", identity],
        input=plaintext,
    )
    return base64.b64encode(encrypted).decode("ascii")


def decrypt(identity, ciphertext):
    """Decrypt a value produced by :func:`encrypt`."""
    # b64decode skips line breaks, so values wrapped by base64(1) work, too.
    message = base64.b64decode(ciphertext)
    with staged(message) as path:
        plaintext = GPG.call(_secret_key_hint(identity) + ["--decrypt", path])
    return plaintext.decode("utf-8")


def _secret_key_hint(identity):
    # gpg finds the key on its own; the hint only saves trying others.
    if not identity:
        return []
    return ["--try-secret-key", identity]


def encrypt_file(identity, source, target):
    GPG.call(
        [
            "--always-trust",
            "--yes",
            "--encrypt",
            "-o",
            target,
            "-r",
            identity,
            source,
        ]
    )


def decrypt_file(identity, source, target):
    GPG.call(
        ["--yes"]
        + _secret_key_hint(identity)
        + ["--decrypt", "-o", target, source]
    )


def has_secret_key(identity):
    try:
        GPG.call(["--list-secret-keys", identity])
    except GPGCallError:
        return False
    return True


def restart_agent():
    """Stop a running gpg-agent so the next call starts a fresh one."""
    if not which("gpgconf"):
        return
    cmd(["gpgconf", "--kill", "gpg-agent"], ignore_returncode=True)

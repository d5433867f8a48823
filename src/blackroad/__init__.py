import os
import os.path

import jinja2

from ._output import output

with open(os.path.dirname(__file__) + "/version.txt") as f:
    __version__ = f.read().strip()


def prepare_error(error):
    return f"{error.__class__.__name__}: {error}"


class ReportingException(Exception):
    """Exceptions that support user-readable reporting."""

    def __str__(self):
        raise NotImplementedError()

    def report(self):
        raise NotImplementedError()


class MissingTool(ReportingException):
    """An external tool required by Black Road is not installed."""

    tool: str
    description: str

    @classmethod
    def from_context(cls, tool, description):
        self = cls()
        self.tool = tool
        self.description = description
        return self

    def __str__(self):
        return (
            f"Black Road needs {self.description} installed to work"
            f" (`{self.tool}` not found)"
        )

    def report(self):
        output.error(str(self))
        output.tabular(
            "Hint", "Install it using the system package manager", red=True
        )


class MissingConfiguration(ReportingException):
    """The configuration document is missing or incomplete."""

    path: str
    fields: list

    @classmethod
    def from_context(cls, path, fields=()):
        self = cls()
        self.path = path
        self.fields = list(fields)
        return self

    def __str__(self):
        if self.fields:
            return "Incomplete configuration in {}: {}".format(
                self.path, ", ".join(self.fields)
            )
        return f"No configuration found at {self.path}"

    def report(self):
        output.error(str(self))
        if self.fields:
            hint = "Run `blackroad init` and fill in every field"
        else:
            hint = "Run `blackroad init` first"
        output.tabular("Hint", hint, red=True)


class UnknownIdentity(ReportingException):
    """The GPG identity has no secret key in the local keychain."""

    identity: str

    @classmethod
    def from_context(cls, identity):
        self = cls()
        self.identity = identity
        return self

    def __str__(self):
        return (
            f"gpg key `{self.identity}` does not exist in the local keychain"
        )

    def report(self):
        output.error(str(self))
        output.tabular("Hint", "Check `gpg --list-secret-keys`", red=True)


class VaultNotReady(ReportingException):
    """Vault did not report itself as initialized."""

    address: str
    log: str

    @classmethod
    def from_context(cls, address, log):
        self = cls()
        self.address = address
        self.log = log
        return self

    def __str__(self):
        return f"Vault is not started or not initialized at {self.address}"

    def report(self):
        output.error(str(self))
        output.tabular("Server log", self.log, red=True)
        output.tabular(
            "Hint",
            "The S3 back end must be accessible and initialized"
            " (vault operator init)",
            red=True,
        )


class GPGCallError(ReportingException):
    """There was an error calling GPG."""

    command: str
    exitcode: str
    output: str

    @classmethod
    def from_context(cls, command, exitcode, output):
        self = cls()
        self.command = command
        self.exitcode = str(exitcode)
        if isinstance(output, bytes):
            output = output.decode("utf-8", errors="replace")
        self.output = output
        return self

    def __str__(self):
        return (
            f"Exitcode {self.exitcode} while calling: "
            f"{self.command}\n{self.output}"
        )

    def report(self):
        output.error("Error while calling GPG")
        output.tabular("command", self.command, red=True)
        output.tabular("exit code", self.exitcode)
        output.tabular("message", self.output, separator=":\n")


class TemplatingError(ReportingException):
    """An error occured while rendering a template."""

    @classmethod
    def from_context(cls, exception, template_identifier):
        self = cls()
        self.exception_str = prepare_error(exception)
        self.template_identifier = template_identifier
        if isinstance(exception, jinja2.TemplateSyntaxError):
            self.exception_str = "{} (line {})".format(
                self.exception_str, exception.lineno
            )
        return self

    def __str__(self):
        return (
            "An error occured while rendering a template"
            f" ({self.template_identifier}): {self.exception_str}"
        )

    def report(self):
        output.error(str(self))

import getpass

from blackroad import (
    MissingConfiguration,
    MissingTool,
    UnknownIdentity,
    config,
    output,
    terraform,
)
from blackroad.secrets import encryption
from blackroad.state import RemoteState
from blackroad.utils import which
from blackroad.vault import VaultServer, render_config

TOOLS = [
    ("gpg", "gpg utility"),
    ("vault", "Hashicorp Vault"),
    ("terraform", "terraform utility"),
    ("aws", "AWS CLI"),
]

CANARY = "GPG key verified"

PROMPTS = [
    ("name", "Project name (will be used for saving Terraform state)", False),
    ("vault.s3.endpoint", "S3 endpoint for Hashicorp Vault back end", False),
    ("vault.s3.region", "S3 region for Hashicorp Vault back end", False),
    ("vault.s3.bucket", "S3 bucket for Hashicorp Vault back end", False),
    ("vault.s3.accessKey", "S3 access key for Hashicorp Vault back end", False),
    ("vault.s3.secretKey", "S3 secret key for Hashicorp Vault back end", True),
    ("vault.unsealKey", "Hashicorp Vault unseal key", True),
    ("vault.accessToken", "Hashicorp Vault access token", True),
    (
        "terraform.s3.endpoint",
        "S3 endpoint for Hashicorp Terraform back end",
        False,
    ),
    ("terraform.s3.region", "S3 region for Hashicorp Terraform back end", False),
    ("terraform.s3.bucket", "S3 bucket for Hashicorp Terraform back end", False),
    (
        "terraform.s3.accessKey",
        "S3 access key for Hashicorp Terraform back end",
        False,
    ),
    (
        "terraform.s3.secretKey",
        "S3 secret key for Hashicorp Terraform back end",
        True,
    ),
]


def preconditions():
    for tool, description in TOOLS:
        if not which(tool):
            raise MissingTool.from_context(tool, description)


def prompt(message, default=None, secret=False):
    """Ask for a value. An empty answer keeps `default`."""
    if secret:
        hint = " [****]" if default else ""
        value = getpass.getpass("{}{}: ".format(message, hint))
    else:
        hint = " [{}]".format(default) if default else ""
        value = input("{}{}: ".format(message, hint))
    return value.strip() or default


def init():
    preconditions()

    identity = prompt("Name of GPG key to use when working with the root secrets")
    if not identity or not encryption.has_secret_key(identity):
        raise UnknownIdentity.from_context(identity)
    encryption.restart_agent()
    output.info(
        encryption.decrypt(identity, encryption.encrypt(identity, CANARY))
    )

    document = config.load(identity)
    for field, message, secret in PROMPTS:
        current = config.get_value(document, field)
        config.set_value(document, field, prompt(message, current, secret))
    config.set_value(document, "gpg.key", identity)
    config.save(identity, document)
    output.info("Config file was saved at {}".format(config.CONFIG_PATH))
    config.validate(document)

    render_config(document)
    output.info(
        "Starting local Vault instance. S3 back end must be accessible and"
        " initialized (vault operator init)"
    )
    with VaultServer(document):
        output.info("Vault is up")
    output.info("Black Road init sequence is complete.")


def _load():
    preconditions()
    if not config.exists():
        raise MissingConfiguration.from_context(config.CONFIG_PATH)
    encryption.restart_agent()
    document = config.load()
    config.validate(document)
    return document


def plan():
    document = _load()
    with VaultServer(document):
        RemoteState(document).pull()
        terraform.plan()


def apply():
    document = _load()
    remote = RemoteState(document)
    with VaultServer(document):
        remote.pull()
        terraform.apply()
    remote.push()

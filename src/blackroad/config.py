"""The Black Road configuration document.

The document is kept as nested dicts, exactly as it is stored as JSON::

    {
      "name": "...",
      "gpg": {"key": "..."},
      "vault": {
        "s3": {"endpoint": ..., "region": ..., "bucket": ...,
               "accessKey": ..., "secretKey": ...},
        "unsealKey": ...,
        "accessToken": ...
      },
      "terraform": {"s3": {...}}
    }

Fields are addressed by dotted names (``vault.s3.bucket``). The values of
`SECRET_FIELDS` are GPG encrypted on disk and clear text in memory.

"""

import copy
import json
import os
import os.path

from blackroad import MissingConfiguration
from blackroad.secrets import encryption

SYSTEM_DIR = ".black-road"
CONFIG_PATH = "black-road.json"
VAULT_CONFIG_PATH = os.path.join(SYSTEM_DIR, "vault.hcl")
VAULT_LOG_PATH = os.path.join(SYSTEM_DIR, "vault.log")
STATE_FILE = "terraform.tfstate"

S3_FIELDS = ["endpoint", "region", "bucket", "accessKey", "secretKey"]

FIELDS = (
    ["name", "gpg.key"]
    + ["vault.s3." + field for field in S3_FIELDS]
    + ["vault.unsealKey", "vault.accessToken"]
    + ["terraform.s3." + field for field in S3_FIELDS]
)

SECRET_FIELDS = [
    "vault.s3.secretKey",
    "vault.unsealKey",
    "vault.accessToken",
    "terraform.s3.secretKey",
]

# Endpoint and region may stay empty for plain AWS S3.
REQUIRED_FIELDS = [
    field
    for field in FIELDS
    if field.rsplit(".", 1)[-1] not in ("endpoint", "region")
]


def get_value(document, field):
    value = document
    for key in field.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def set_value(document, field, value):
    *path, key = field.split(".")
    for part in path:
        if not isinstance(document.get(part), dict):
            document[part] = {}
        document = document[part]
    document[key] = value


def _complete(document):
    for field in FIELDS:
        if get_value(document, field) is None:
            set_value(document, field, None)
    return document


def blank():
    return _complete({})


def exists(path=CONFIG_PATH):
    return os.path.exists(path)


def load(identity=None, path=CONFIG_PATH):
    """Load the document and decrypt its secrets.

    The identity recorded in the document wins over `identity`.

    """
    if not exists(path):
        return blank()
    with open(path) as f:
        document = json.load(f)
    _complete(document)
    identity = get_value(document, "gpg.key") or identity
    for field in SECRET_FIELDS:
        value = get_value(document, field)
        set_value(
            document,
            field,
            encryption.decrypt(identity, value) if value else None,
        )
    return document


def save(identity, document, path=CONFIG_PATH):
    """Encrypt the secrets for `identity` and write the document."""
    document = _complete(copy.deepcopy(document))
    document["gpg"] = {"key": identity}
    for field in SECRET_FIELDS:
        value = get_value(document, field)
        set_value(
            document,
            field,
            encryption.encrypt(identity, value) if value else None,
        )
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        json.dump(document, f, indent=2)


def validate(document, path=CONFIG_PATH):
    missing = [
        field for field in REQUIRED_FIELDS if not get_value(document, field)
    ]
    if missing:
        raise MissingConfiguration.from_context(path, missing)


def aws_environment(s3, endpoint=False):
    """Credentials for an AWS-compatible tool talking to `s3`."""
    env = {
        "AWS_ACCESS_KEY_ID": s3.get("accessKey"),
        "AWS_SECRET_ACCESS_KEY": s3.get("secretKey"),
        "AWS_REGION": s3.get("region"),
    }
    if endpoint:
        env["AWS_ENDPOINT_URL"] = s3.get("endpoint")
    return env

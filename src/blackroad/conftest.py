import pytest

from blackroad.secrets import encryption
from blackroad.tests.fakes import FakeGPG


@pytest.fixture(autouse=True)
def output(monkeypatch):
    from blackroad import output
    from blackroad._output import TestBackend

    backend = TestBackend()
    monkeypatch.setattr(output, "backend", backend)
    monkeypatch.setattr(output, "enable_debug", False)
    return output


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    """Run every test in its own empty working directory."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def gpg_binary(monkeypatch):
    monkeypatch.setattr(encryption.GPG, "_gpg", "gpg")


@pytest.fixture
def gpg(monkeypatch):
    fake = FakeGPG()
    monkeypatch.setattr(encryption, "cmd", fake)
    monkeypatch.setattr(encryption, "which", lambda name: "/usr/bin/" + name)
    return fake


@pytest.fixture
def document():
    return {
        "name": "road",
        "gpg": {"key": None},
        "vault": {
            "s3": {
                "endpoint": "https://s3.example.com",
                "region": "eu-central-1",
                "bucket": "road-vault",
                "accessKey": "VAULTACCESS",
                "secretKey": "vault-secret",
            },
            "unsealKey": "unseal-me",
            "accessToken": "s.token",
        },
        "terraform": {
            "s3": {
                "endpoint": "https://s3.example.com",
                "region": "eu-central-1",
                "bucket": "road-state",
                "accessKey": "TFACCESS",
                "secretKey": "tf-secret",
            }
        },
    }

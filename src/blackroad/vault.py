import os
import os.path

from blackroad import VaultNotReady, output, template
from blackroad.config import VAULT_CONFIG_PATH, VAULT_LOG_PATH, aws_environment
from blackroad.utils import Timer, cmd, retry, spawn

VAULT_HOST = "127.0.0.1:8200"
VAULT_URL = "http://" + VAULT_HOST
CLUSTER_URL = "https://127.0.0.1:8201"

STATUS_ATTEMPTS = 5
STATUS_DELAY = 3
INITIALIZED = "Initialized true"


def render_config(document, path=VAULT_CONFIG_PATH):
    """Write the Vault server configuration for `document`."""
    content = template.render(
        "vault.hcl",
        dict(
            s3=document["vault"]["s3"],
            host=VAULT_HOST,
            url=VAULT_URL,
            cluster_url=CLUSTER_URL,
        ),
    )
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w") as f:
        f.write(content)
    return path


class VaultServer(object):
    """A local Vault server backed by the configured S3 bucket.

    Use it as a context manager to have it stopped once the block is
    left::

        with VaultServer(document):
            terraform.plan()

    A server that fails to come up is not stopped.

    """

    attempts = STATUS_ATTEMPTS
    delay = STATUS_DELAY

    def __init__(
        self,
        document,
        config_path=VAULT_CONFIG_PATH,
        log_path=VAULT_LOG_PATH,
        address=VAULT_URL,
    ):
        self.document = document
        self.config_path = config_path
        self.log_path = log_path
        self.address = address
        self.process = None

    @property
    def running(self):
        return self.process is not None and self.process.poll() is None

    def start(self):
        output.info("Starting Vault...")
        vault = self.document["vault"]
        log_dir = os.path.dirname(self.log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with Timer("starting vault"):
            self.process = spawn(
                ["vault", "server", "-config", self.config_path],
                env=aws_environment(vault["s3"]),
                logfile=self.log_path,
            )
            retry(
                self.assert_initialized,
                attempts=self.attempts,
                delay=self.delay,
                exceptions=(VaultNotReady,),
            )
        self.unseal(vault["unsealKey"])
        self.login(vault["accessToken"])
        output.info("Vault is up, unsealed and logged in")
        return self

    def status(self):
        # `vault status` exits with 2 while sealed but reports fine.
        stdout, _ = cmd(
            ["vault", "status", "-address=" + self.address],
            ignore_returncode=True,
        )
        return stdout

    def assert_initialized(self):
        for line in self.status().splitlines():
            if " ".join(line.split()) == INITIALIZED:
                return
        raise VaultNotReady.from_context(self.address, self.log_path)

    def unseal(self, key):
        cmd(
            ["vault", "operator", "unseal", "-address=" + self.address, key],
            mask=[key],
        )

    def login(self, token):
        cmd(
            ["vault", "login", "-address=" + self.address, token],
            mask=[token],
        )

    def stop(self):
        if self.process is None:
            return
        self.process.terminate()
        self.process.wait()
        self.process = None
        output.info("Vault was gracefully shut down")

    def __enter__(self):
        return self.start()

    def __exit__(self, exc_type, exc_value, traceback):
        self.stop()

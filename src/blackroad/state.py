"""Keep the Terraform state in S3, encrypted with GPG.

The remote object is named after the project. The `.tfsate` suffix is
what existing deployments have in their buckets and must stay as is.

"""

import contextlib
import os
import os.path

from blackroad import output
from blackroad.config import STATE_FILE, SYSTEM_DIR, aws_environment
from blackroad.secrets import encryption
from blackroad.utils import CmdExecutionError, cmd

STATE_SUFFIX = ".tfsate"


def _remove(path):
    with contextlib.suppress(FileNotFoundError):
        os.unlink(path)


def _not_found(error):
    # head-object has no body, the CLI only reports the status line.
    stderr = error.stderr or ""
    return "Not Found" in stderr or "404" in stderr


class RemoteState(object):
    def __init__(self, document, state_file=STATE_FILE, system_dir=SYSTEM_DIR):
        self.identity = document["gpg"]["key"]
        self.s3 = document["terraform"]["s3"]
        self.key = document["name"] + STATE_SUFFIX
        self.url = "s3://{}/{}".format(self.s3["bucket"], self.key)
        self.state_file = state_file
        self.staging_path = os.path.join(system_dir, self.key)
        self.env = aws_environment(self.s3, endpoint=True)

    def _aws(self, args):
        if self.s3.get("endpoint"):
            args = args + ["--endpoint-url", self.s3["endpoint"]]
        return cmd(["aws"] + args, env=self.env)

    def exists(self):
        try:
            self._aws(
                [
                    "s3api",
                    "head-object",
                    "--bucket",
                    self.s3["bucket"],
                    "--key",
                    self.key,
                ]
            )
        except CmdExecutionError as e:
            if not _not_found(e):
                raise
            return False
        return True

    def pull(self):
        """Replace the local state with the remote one, if there is any."""
        if not self.exists():
            output.info("Remote Terraform state not found")
            return False
        output.info("Found remote Terraform state. Downloading...")
        _remove(self.staging_path)
        os.makedirs(os.path.dirname(self.staging_path) or ".", exist_ok=True)
        self._aws(["s3", "cp", self.url, self.staging_path])
        output.info("Downloaded remote Terraform state")

        output.info("Decrypting remote Terraform state")
        _remove(self.state_file)
        encryption.decrypt_file(self.identity, self.staging_path, self.state_file)
        output.info("Decrypted remote Terraform state")
        return True

    def push(self):
        """Encrypt the local state and upload it."""
        output.info("Encrypting remote Terraform state")
        _remove(self.staging_path)
        os.makedirs(os.path.dirname(self.staging_path) or ".", exist_ok=True)
        encryption.encrypt_file(self.identity, self.state_file, self.staging_path)
        output.info("Saving remote Terraform state")
        self._aws(["s3", "cp", self.staging_path, self.url])
        output.info("Saved remote Terraform state")

from blackroad.utils import stream
from blackroad.vault import VAULT_URL

# Providers talking to the local Vault pick the address up from here.
ENVIRONMENT = {"VAULT_ADDR": VAULT_URL}


def plan():
    stream(["terraform", "plan"], env=ENVIRONMENT)


def apply():
    stream(["terraform", "apply", "-auto-approve"], env=ENVIRONMENT)

import argparse
import os
import sys
from typing import Optional

import importlib_resources

import blackroad
import blackroad.deploy
from blackroad._output import TerminalBackend, output

WELCOME = "Welcome to Black Road deploy utility"


def main(args: Optional[list] = None) -> Optional[int]:
    if os.environ.get("BLACKROAD_BASEDIR"):
        os.chdir(os.environ["BLACKROAD_BASEDIR"])
    version = (
        importlib_resources.files("blackroad")
        .joinpath("version.txt")
        .read_text()
        .strip()
    )
    parser = argparse.ArgumentParser(
        description=(
            "Black Road v{}: Terraform deployments with GPG encrypted"
            " secrets and remote state"
        ).format(version),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.set_defaults(func=None)

    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Show the external commands being run.",
    )

    subparsers = parser.add_subparsers()

    p = subparsers.add_parser(
        "init",
        help="Set up the GPG key, the S3 back ends and Vault credentials.",
    )
    p.set_defaults(func=blackroad.deploy.init)

    p = subparsers.add_parser(
        "plan", help="Run `terraform plan` against the remote state."
    )
    p.set_defaults(func=blackroad.deploy.plan)

    p = subparsers.add_parser(
        "apply",
        help="Run `terraform apply` and upload the resulting state.",
    )
    p.set_defaults(func=blackroad.deploy.apply)

    argv = sys.argv[1:] if args is None else list(args)
    words = [arg for arg in argv if not arg.startswith("-")]
    if words and words[0] not in subparsers.choices:
        # Unknown commands get the welcome message, like no command.
        argv = [arg for arg in argv if arg.startswith("-")]
    args = parser.parse_args(argv)

    output.backend = TerminalBackend()
    output.enable_debug = args.debug

    if args.func is None:
        output.error(WELCOME)
        parser.print_usage()
        output.info("Exiting")
        return None

    try:
        args.func()
    except blackroad.ReportingException as e:
        e.report()
        return 1
    finally:
        output.info("Exiting")
    return None

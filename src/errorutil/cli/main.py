"""errorutil command-line interface entrypoint."""

from __future__ import annotations

import argparse
from collections.abc import Sequence

from errorutil.cli.commands import emit, show_config
from errorutil.version import __version__


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the parser; each subcommand carries its handler as ``args.func``."""
    parser = argparse.ArgumentParser(
        prog="errorutil",
        description="Format errors into structured records and send them to a log backend.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True, metavar="<command>")
    for module in (emit, show_config):
        module.add_subparser(subparsers).set_defaults(func=module.run)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """Parse args and run the selected command."""
    args = build_arg_parser().parse_args(argv)
    args.func(args)


app = main


if __name__ == "__main__":
    main()

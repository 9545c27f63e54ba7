"""Command-line front end for SealBox.

Text in, text out: plaintext or envelope JSON is read from ``--text`` or
stdin and the result is written to stdout. The passphrase is never taken as a
plain argument; it comes from an environment variable named with
``--passphrase-env`` or from an interactive prompt.

Usage:
    echo -n "hello world" | python -m sealbox.frontend.cli.app encrypt > note.json
    python -m sealbox.frontend.cli.app decrypt < note.json
"""

from __future__ import annotations

import argparse
import getpass
import logging
import os
import sys
from typing import Optional, Sequence

from sealbox.core.exceptions import DecryptionError, FormatError, InvalidInputError
from sealbox.frontend.cli.context import CliContext, build_context
from sealbox.frontend.cli.logging_config import configure_logging

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID_INPUT = 2
EXIT_FORMAT_ERROR = 3
EXIT_DECRYPTION_FAILED = 4


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sealbox",
        description="AES-256-GCM + PBKDF2 passphrase envelopes",
    )
    parser.add_argument(
        "--passphrase-env",
        metavar="VAR",
        default=None,
        help="read the passphrase from this environment variable instead of prompting",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    enc = sub.add_parser("encrypt", help="encrypt plaintext into an envelope")
    enc.add_argument("--text", default=None, help="plaintext (default: read stdin)")
    enc.add_argument("--iterations", type=int, default=None, help="PBKDF2 iteration count")

    dec = sub.add_parser("decrypt", help="decrypt an envelope back to plaintext")
    dec.add_argument("--text", default=None, help="envelope JSON (default: read stdin)")

    return parser


def _read_passphrase(var: Optional[str]) -> str:
    if var:
        value = os.environ.get(var)
        if value is None:
            raise InvalidInputError(f"Environment variable {var} is not set")
        return value
    return getpass.getpass("Passphrase: ")


def run_command(ctx: CliContext, args: argparse.Namespace) -> str:
    """Execute the parsed command and return the text to print."""
    text = args.text if args.text is not None else sys.stdin.read()
    passphrase = _read_passphrase(args.passphrase_env)

    if args.command == "encrypt":
        return ctx.encryptor.encrypt(text, passphrase, iterations=args.iterations)
    return ctx.encryptor.decrypt(text, passphrase)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        ctx = build_context()
    except InvalidInputError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    configure_logging(ctx.log_level)

    try:
        output = run_command(ctx, args)
    except InvalidInputError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INVALID_INPUT
    except FormatError as e:
        logger.info("rejected envelope: %s (field=%s)", e.kind.value, e.field)
        print(f"error: invalid envelope: {e}", file=sys.stderr)
        return EXIT_FORMAT_ERROR
    except DecryptionError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_DECRYPTION_FAILED

    sys.stdout.write(output)
    if args.command == "encrypt":
        sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

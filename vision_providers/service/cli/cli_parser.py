"""CLI parser construction for vision-cli.

This module wires subparsers but contains no execution logic. Subcommand
handlers live in ``cli_actions``.
"""

from __future__ import annotations

import argparse

from ...config.defaults import PROVIDER_CLI_DEFAULT_PROVIDER


def _str2bool(v: str | None) -> bool:
    """Best-effort conversion of common truthy/falsey strings to bool.

    Parameters
    ----------
    v: str | None
        Incoming string value (e.g., "true", "false", "1", "0"). When ``None``
        and used via argparse with ``const=True``, this returns ``True``.

    Returns
    -------
    bool
        Parsed boolean value with a permissive mapping for typical CLI inputs.
    """
    if v is None:
        return True
    val = v.strip().lower()
    if val in {"1", "t", "true", "y", "yes", "on"}:
        return True
    return False if val in {"0", "f", "false", "n", "no", "off"} else bool(val)


def add_stream_flags(parser: argparse.ArgumentParser) -> None:
    """Attach ``--stream``/``--no-stream`` flags to a parser.

    ``--stream`` accepts an optional boolean (``--stream``, ``--stream true``,
    ``--stream false``); ``--no-stream`` is the explicit negation.
    """
    grp = parser.add_mutually_exclusive_group()
    grp.add_argument("--stream", nargs="?", const=True, type=_str2bool, default=False)
    grp.add_argument("--no-stream", dest="stream", action="store_false")


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level parser with ``analyze`` and ``models`` subcommands."""
    p = argparse.ArgumentParser(prog="vision-cli", description="Send text and images to a vision backend")
    p.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    sub = p.add_subparsers(dest="cmd")

    # analyze
    p_analyze = sub.add_parser("analyze", help="Ask a question about one or more images")
    p_analyze.add_argument("--provider", default=PROVIDER_CLI_DEFAULT_PROVIDER)
    p_analyze.add_argument("--model", default=None)
    p_analyze.add_argument("--prompt", required=True)
    p_analyze.add_argument("--image", dest="images", action="append", default=[], metavar="PATH")
    p_analyze.add_argument("--system", default=None, help="Optional system instruction")
    p_analyze.add_argument("--base-url", default=None)
    add_stream_flags(p_analyze)

    # models
    p_models = sub.add_parser("models", help="List or verify the models a backend can use")
    p_models.add_argument("--provider", default=PROVIDER_CLI_DEFAULT_PROVIDER, help="ollama, gemini or anthropic")
    p_models.add_argument("--base-url", default=None)
    p_models.add_argument("--verify", default=None, metavar="MODEL", help="Check one model instead of listing")
    p_models.add_argument("--json", action="store_true")

    return p


__all__ = ["build_parser", "add_stream_flags"]

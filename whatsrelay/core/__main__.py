from __future__ import annotations

import argparse
import asyncio
import sys
from textwrap import dedent

__all__ = ["cli"]

# ---------------------------------------------------------------------------+
#  Minimal CLI parser                                                         +
# ---------------------------------------------------------------------------+


def _build_parser() -> argparse.ArgumentParser:  # noqa: D401
    """Return a parser that understands *only* ``--help`` and ``--version``.

    ``python -m whatsrelay.core --help`` exits before aiohttp, the DI
    container or the transport are imported.
    """

    try:
        import importlib.metadata as _ilmd

        version: str = _ilmd.version("whatsrelay")
    except Exception:  # pragma: no cover - metadata lookup best-effort
        version = "unknown"

    parser = argparse.ArgumentParser(
        prog="python -m whatsrelay.core",
        add_help=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=dedent(
            """\
            WhatsApp session relay
            ----------------------
            Run *without arguments* to start the relay using environment
            variables (or .env) and the code-base defaults.
            """
        ),
    )
    parser.add_argument("-h", "--help", action="help", help="show this message and exit")
    parser.add_argument(
        "-V", "--version", action="version", version=f"%(prog)s {version}"
    )
    return parser


# ---------------------------------------------------------------------------+
#  Public entry-point                                                        +
# ---------------------------------------------------------------------------+


def cli(argv: list[str] | None = None) -> None:  # noqa: D401
    """Entry-point for ``python -m whatsrelay.core`` and the ``whatsrelay`` script."""

    _build_parser().parse_known_args(argv)  # exits on -h/-V

    from whatsrelay.core.logger_setup import setup_logging

    setup_logging()
    from whatsrelay.core.main import main  # delayed import keeps --help fast

    asyncio.run(main())


if __name__ == "__main__":  # pragma: no cover
    try:
        cli(sys.argv[1:])
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)

"""Command-line launcher: check the FAQ corpus and settings, then serve the chat UI."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from faqbot.config import ESCALATION_BACKENDS, config
from faqbot.exceptions import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"
DEFAULT_PORT = 8501


def resolve_path(path: Path) -> Path:
    """Anchor relative paths at the project root, where the UI process runs."""  # noqa: DOC201
    return (path if path.is_absolute() else PROJECT_ROOT / path).resolve()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Read launcher options; unset options fall back to the environment."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        prog="faqbot",
        description="Serve grounded answers from one FAQ document in a chat UI.",
    )
    parser.add_argument(
        "--document",
        type=Path,
        default=None,
        help="FAQ document to index, .pdf or .txt (default: DOCUMENT_PATH).",
    )
    parser.add_argument(
        "--escalations",
        choices=sorted(ESCALATION_BACKENDS),
        default=None,
        help="Where unanswered questions are stored (default: ESCALATION_BACKEND).",
    )
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--address", default="localhost")
    parser.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open a browser window instead of running headless.",
    )
    parser.set_defaults(headless=True)
    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    options = {
        "server.port": str(port),
        "server.address": address,
        "server.headless": str(headless).lower(),
    }
    command = [sys.executable, "-m", "streamlit", "run", str(script_path)]
    for name, value in options.items():
        command.extend([f"--{name}", value])
    return command


def build_environment(args: argparse.Namespace) -> dict[str, str]:
    """Environment for the UI process with command-line overrides applied."""  # noqa: DOC201
    env = dict(os.environ)
    if args.document is not None:
        env["DOCUMENT_PATH"] = str(resolve_path(args.document))
    if args.escalations is not None:
        env["ESCALATION_BACKEND"] = args.escalations
    return env


def run_streamlit(
    command: Sequence[str],
    logger: Logger,
    env: Mapping[str, str] | None = None,
) -> int:
    """Run the UI until it exits and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(command, check=False, cwd=PROJECT_ROOT, env=env)
    except KeyboardInterrupt:
        logger.info("FAQBot stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def main(argv: Sequence[str] | None = None) -> int:
    """Fail fast on a bad configuration or a missing corpus, then start the UI."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ConfigError:
        logger.exception("Configuration invalid")
        return 1
    if args.escalations == "sheetdb" and not config.SHEETDB_API_ADDRESS:
        logger.error("SHEETDB_API_ADDRESS is required for --escalations sheetdb")
        return 1

    document_path = resolve_path(args.document or config.DOCUMENT_PATH)
    if not document_path.is_file():
        logger.error("FAQ document not found: %s", document_path)
        return 1

    script_path = resolve_path(args.app)
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Serving answers from %s at http://%s:%s",
        document_path.name,
        args.address,
        args.port,
    )

    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )
    return_code = run_streamlit(command, logger, env=build_environment(args))
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from importlib import metadata
from pathlib import Path

import tomllib
import uvicorn
from rich.console import Console

from .capability import ReadabilityUnavailableError
from .config import DEFAULT_PORT, ReaderConfig, ServerConfig
from .errors import ExtractionError, InvalidInput
from .extraction import ArticleExtractor
from .importer import load_text_file
from .logging_utils import build_uvicorn_log_config, configure_logging
from .scheduler import PlaybackConfig
from .terminal import play_text, play_url
from .web import build_extractor, create_app


def _read_local_version() -> str | None:
    pyproject_path = Path(__file__).resolve().parents[2] / "pyproject.toml"
    try:
        with pyproject_path.open("rb") as fh:
            data = tomllib.load(fh)
    except (FileNotFoundError, tomllib.TOMLDecodeError):
        return None
    return data.get("project", {}).get("version")


try:
    __version__ = metadata.version("speedread")
except metadata.PackageNotFoundError:
    __version__ = _read_local_version() or "0.0.0+unknown"


def _add_version_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"speedread {__version__}",
    )


def _add_fetch_flags(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--user-agent",
        help="User-Agent header sent when fetching articles.",
    )
    ap.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait for the article host (default: 20).",
    )
    ap.add_argument(
        "--debug",
        action="store_true",
        help="Print debug logs to stderr.",
    )


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="speedread",
        description=(
            "RSVP speed reader. Commands: `read` plays text in the terminal, "
            "`extract` prints an article's readable text, `serve` runs the extraction API."
        ),
    )
    _add_version_flag(ap)
    return ap


def build_read_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="speedread read",
        description="Flash text one chunk at a time with the focal letter centred.",
    )
    _add_version_flag(ap)
    ap.add_argument(
        "input_path",
        nargs="?",
        help="Plain .txt file to read ('-' or omitted reads stdin).",
    )
    ap.add_argument(
        "--url",
        help="Import the article at this URL instead of reading a file.",
    )
    ap.add_argument(
        "--wpm",
        type=int,
        default=300,
        help="Words per minute, 100-3000 (default: 300).",
    )
    ap.add_argument(
        "--chunk",
        type=int,
        choices=[1, 2, 3],
        default=1,
        help="Words shown at once (default: 1).",
    )
    ap.add_argument(
        "--pause",
        type=float,
        default=0.25,
        help="Extra seconds after . , ! ? ; : (default: 0.25).",
    )
    _add_fetch_flags(ap)
    return ap


def build_extract_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="speedread extract",
        description="Fetch a URL and print its readable article text.",
    )
    _add_version_flag(ap)
    ap.add_argument("url", help="http:// or https:// URL of the article.")
    ap.add_argument(
        "--json",
        action="store_true",
        help="Print {title, text} as JSON instead of plain text.",
    )
    _add_fetch_flags(ap)
    return ap


def build_serve_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="speedread serve",
        description="Serve POST /api/readability and GET /api/health.",
    )
    _add_version_flag(ap)
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host interface for the web server (default: 0.0.0.0).",
    )
    ap.add_argument(
        "--port",
        type=int,
        help=f"Port for the web server (default: $PORT or {DEFAULT_PORT}).",
    )
    _add_fetch_flags(ap)
    return ap


def _build_extractor(args: argparse.Namespace) -> ArticleExtractor:
    config = ServerConfig.from_env(user_agent=args.user_agent, fetch_timeout=args.timeout)
    try:
        return build_extractor(config)
    except ReadabilityUnavailableError as exc:
        raise SystemExit(str(exc)) from exc


def _read_input_text(input_path: str | None) -> str:
    if input_path in (None, "-"):
        return sys.stdin.read()
    path = Path(input_path)
    if not path.exists():
        raise FileNotFoundError(f"Input path not found: {path}")
    return load_text_file(path)


def _run_read(args: argparse.Namespace) -> int:
    configure_logging(args.debug)
    console = Console()
    try:
        reader = ReaderConfig(speed_wpm=args.wpm, chunk_size=args.chunk, pause_seconds=args.pause)
    except ValueError as exc:
        raise SystemExit(str(exc)) from exc
    config = PlaybackConfig(
        speed_wpm=reader.speed_wpm,
        chunk_size=reader.chunk_size,
        pause_seconds=reader.pause_seconds,
    )

    try:
        if args.url:
            result = asyncio.run(play_url(args.url, _build_extractor(args), config, console=console))
        else:
            text = _read_input_text(args.input_path)
            result = asyncio.run(play_text(text, config, console=console))
    except InvalidInput as exc:
        console.print(exc.message, style="red", markup=False)
        return 1
    except KeyboardInterrupt:
        return 130

    if not result.ok:
        console.print(result.message, style="red", markup=False)
        return 1
    return 0


def _run_extract(args: argparse.Namespace) -> int:
    configure_logging(args.debug)
    console = Console()
    extractor = _build_extractor(args)
    try:
        result = extractor.extract(args.url)
    except ExtractionError as exc:
        Console(stderr=True).print(exc.message, style="red", markup=False)
        return 1
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False))
        return 0
    if result.title:
        console.print(result.title, style="bold", markup=False)
        console.print()
    print(result.text)
    return 0


def _run_serve(args: argparse.Namespace) -> None:
    config = ServerConfig.from_env(
        host=args.host,
        port=args.port,
        user_agent=args.user_agent,
        fetch_timeout=args.timeout,
        debug=args.debug or None,
    )
    try:
        app = create_app(config)
    except ReadabilityUnavailableError as exc:
        raise SystemExit(str(exc)) from exc
    print(f"speedread API listening on http://{config.host}:{config.port}/api/readability")
    print("Press Ctrl+C to stop.\n")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_config=build_uvicorn_log_config(config.debug),
        log_level="debug" if config.debug else "info",
    )


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] == "read":
        read_args = build_read_parser().parse_args(argv[1:])
        return _run_read(read_args)
    if argv and argv[0] == "extract":
        extract_args = build_extract_parser().parse_args(argv[1:])
        return _run_extract(extract_args)
    if argv and argv[0] == "serve":
        serve_args = build_serve_parser().parse_args(argv[1:])
        _run_serve(serve_args)
        return 0

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    parser.parse_args(argv)
    parser.error(f"unknown command: {argv[0]}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())

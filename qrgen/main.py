import argparse
from dataclasses import replace
import logging
from pathlib import Path
import sys

from qrgen.config import Settings, get_settings
from qrgen.database import build_session_factory
from qrgen.errors import ConfigError
from qrgen.pipeline import PipelineRunner
from qrgen.schemas import RunResult


EXIT_OK = 0
EXIT_INPUT_FAILED = 1
EXIT_CONFIG_ERROR = 2

VERBOSITY_LEVELS = {0: "WARNING", 1: "INFO", 2: "DEBUG", 3: "NOTSET"}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="qrgen",
        description="Bulk convert (label, payload) rows of delimited files into QR Code images",
    )
    parser.add_argument("infile", nargs="+", type=Path, help="input files, processed in the given order")
    parser.add_argument("-o", "--output", help="output directory, or - for the current working directory")
    parser.add_argument("-m", "--min", dest="version_min", type=int, help="minimum QR Code Model 2 version (1-40)")
    parser.add_argument("-x", "--max", dest="version_max", type=int, help="maximum QR Code Model 2 version (1-40)")
    parser.add_argument(
        "-e",
        "--error",
        dest="error_correction",
        help="error correction level: Low (~7%%), Medium (~15%%), Quartile (~25%%) or High (~30%%)",
    )
    parser.add_argument("-k", "--mask", type=int, help="fixed mask pattern (0-7); chosen automatically if omitted")
    parser.add_argument(
        "--no-boost",
        dest="boost_error_correction",
        action="store_false",
        default=None,
        help="do not raise the error correction level when the chosen version has room for it",
    )
    parser.add_argument("-c", "--chunk", dest="chunk_size", type=int, help="rows processed in parallel per chunk")
    parser.add_argument("-s", "--skip", dest="skip_header", action="store_true", default=None, help="skip the header line")
    parser.add_argument("-d", "--delimiter", help="field delimiter of the input files")
    parser.add_argument("-b", "--border", type=int, help="border width in modules")
    parser.add_argument("-f", "--format", dest="output_format", help="output format: SVG or PNG")
    parser.add_argument("-a", "--scale", dest="module_scale", type=int, help="PNG pixels per module (1-255)")
    parser.add_argument("--foreground", help="module color as RRGGBB")
    parser.add_argument("--background", help="background color as RRGGBB")
    parser.add_argument(
        "--suppress-rect",
        dest="suppress_rect",
        action="store_true",
        default=None,
        help="SVG only: draw all modules as one combined path instead of one rect each",
    )
    parser.add_argument("--ledger-url", dest="database_url", help="SQLAlchemy URL of the run ledger database")
    parser.add_argument("-l", "--log", action="store_true", help="enable logging to stderr")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0, help="logging verbosity (-v info, -vv debug, -vvv everything)"
    )
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        name: getattr(args, name)
        for name in (
            "version_min",
            "version_max",
            "error_correction",
            "mask",
            "boost_error_correction",
            "chunk_size",
            "skip_header",
            "delimiter",
            "border",
            "output_format",
            "module_scale",
            "foreground",
            "background",
            "suppress_rect",
            "database_url",
        )
        if getattr(args, name) is not None
    }
    if args.output is not None:
        overrides["output_dir"] = args.output
    return replace(settings, **overrides)


def resolve_log_level(settings: Settings, args: argparse.Namespace) -> str | None:
    """Level to log at, or None when logging stays off (no -l and no LOG_LEVEL)."""
    if not (args.log or settings.log_level):
        return None
    if args.verbose:
        return VERBOSITY_LEVELS[min(args.verbose, 3)]
    return settings.log_level or VERBOSITY_LEVELS[0]


def configure_logging(level: str | None) -> None:
    if level is None:
        # Silences logging.lastResort.
        logging.getLogger().addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def print_summary(result: RunResult) -> None:
    for file_result in result.files:
        print(
            "file={path} status={status} succeeded={succeeded} failed={failed}{error}".format(
                path=file_result.input_path,
                status=file_result.status,
                succeeded=file_result.succeeded_rows,
                failed=file_result.failed_rows,
                error=f" error={file_result.error}" if file_result.error else "",
            )
        )
    print(
        "status={status} files={files} succeeded={succeeded} failed={failed}{run}".format(
            status=result.status,
            files=len(result.files),
            succeeded=result.succeeded_rows,
            failed=result.failed_rows,
            run=f" run_id={result.run_id}" if result.run_id is not None else "",
        )
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = apply_overrides(get_settings(), args)
        encoding = settings.encoding_config()
        rendering = settings.render_config()
        processing = settings.processing_config()
    except ConfigError as exc:
        print(f"qrgen: configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    configure_logging(resolve_log_level(settings, args))

    try:
        processing.output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        print(f"qrgen: cannot create output directory {processing.output_dir}: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    session_factory = build_session_factory(settings.database_url) if settings.database_url else None

    runner = PipelineRunner(encoding, rendering, processing, session_factory=session_factory)
    result = runner.run(args.infile)
    print_summary(result)

    if result.status == "failed":
        return EXIT_INPUT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

"""CLI entrypoints for manualgen commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import load_config
from .errors import EvaluationError, ManualGenError
from .logging import configure_logging
from .models import OutputMode
from .pipeline import ManualPipeline

_COMMAND_MODES = {
    "html": [OutputMode.HTML],
    "epub": [OutputMode.EPUB],
    "manpages": [OutputMode.MANPAGE],
    "all": list(OutputMode),
}

_COMMAND_HELP = {
    "options": "Evaluate module sets and write their options documents.",
    "html": "Render the multi-page HTML manual.",
    "epub": "Package the EPUB manual.",
    "manpages": "Render configuration.nix(5) and install static man pages.",
    "all": "Build options, HTML, EPUB and man pages.",
}


def _add_build_options(parser: argparse.ArgumentParser, *, subcommand: bool) -> None:
    # Subcommands suppress their defaults so a flag given before the command survives.
    default = argparse.SUPPRESS if subcommand else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Log debug output, prefixed with the component that wrote it.",
    )
    if subcommand:
        parser.add_argument(
            "-o",
            "--output",
            default=argparse.SUPPRESS,
            help="Directory that receives the build outputs (overrides the config file).",
        )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="manualgen",
        description="Build the system manual and option reference from Markdown and module sets.",
    )
    _add_build_options(parser, subcommand=False)
    parser.add_argument(
        "-c",
        "--config",
        default=".",
        help="Path to .manualgen.yml or the directory containing it (defaults to current directory).",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    for command, help_text in _COMMAND_HELP.items():
        _add_build_options(subparsers.add_parser(command, help=help_text), subcommand=True)
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for manualgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    try:
        config = load_config(Path(args.config))
        if getattr(args, "output", None):
            config.output = Path(args.output).expanduser().resolve()
        pipeline = ManualPipeline(config)
        if args.command == "options":
            documents = pipeline.build_options()
            products = {name: document.json_path for name, document in documents.items()}
        else:
            outcome = pipeline.build(_COMMAND_MODES[args.command])
            products = {mode.value: artifact.primary for mode, artifact in outcome.artifacts.items()}
    except EvaluationError as exc:
        parser.exit(1, f"manualgen {args.command} failed: {exc}\n")
    except ManualGenError as exc:
        parser.exit(1, f"manualgen {args.command} failed: {exc}\nRun with --verbose for more details.\n")

    print(f"Output: {pipeline.output_dir}")
    for label, path in products.items():
        print(f"  {label}: {_within_output(path, pipeline.output_dir)}")


def _within_output(path: Path, output_dir: Path) -> str:
    """Show ``path`` relative to the output directory when it lives there."""
    try:
        return path.relative_to(output_dir).as_posix()
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

"""CLI entrypoints for archviz commands."""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from .config import PROMPT_PACKS, ConfigError, load_config
from .digest import load_digest
from .errors import InvalidInput, UpstreamGenerationError
from .logging import configure_logging
from .orchestrator import Orchestrator
from .postproc.analysis import render_analysis_html
from .postproc.links import DiagramLinkRewriter


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="archviz",
        description="Generate architecture diagrams for repositories using a language model.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to archviz.yml (defaults to $ARCHVIZ_CONFIG or ./archviz.yml).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Run the explanation, mapping and diagram stages for a repository digest.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    generate_parser.add_argument("digest", type=Path, help="Path to a repository digest JSON file.")
    generate_parser.add_argument(
        "--pack",
        choices=PROMPT_PACKS,
        default=None,
        help="Prompt pack to use instead of the configured one.",
    )
    generate_parser.add_argument(
        "--html-url",
        default=None,
        help="Repository web URL used to turn click paths into links.",
    )
    generate_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the diagram to this file instead of stdout.",
    )
    generate_parser.add_argument(
        "--analysis",
        type=Path,
        default=None,
        help="Also write the explanation as HTML to this file.",
    )

    rewrite_parser = subparsers.add_parser(
        "rewrite",
        help="Rewrite click directives in an existing diagram into repository links.",
    )
    _add_verbose_option(rewrite_parser, suppress_default=True)
    rewrite_parser.add_argument("diagram", type=Path, help="Path to a Mermaid diagram file.")
    rewrite_parser.add_argument("--html-url", required=True, help="Repository web URL.")
    rewrite_parser.add_argument("--branch", default="main", help="Branch used in generated links.")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for archviz commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "generate":
        if args.pack:
            config = replace(config, pipeline=replace(config.pipeline, prompt_pack=args.pack))
        try:
            digest = load_digest(args.digest)
            result = Orchestrator.from_config(config).run(digest)
        except InvalidInput as exc:
            parser.exit(1, f"{exc}\n")
        except UpstreamGenerationError as exc:
            parser.exit(1, f"archviz generate failed: {exc}\nRun with --verbose for more details.\n")
        logger.info("Generated diagram for %s", digest.name)
        diagram = result.diagram_text
        html_url = args.html_url or digest.html_url
        if html_url:
            diagram = DiagramLinkRewriter().rewrite(diagram, html_url, digest.default_branch)
        if args.analysis:
            args.analysis.write_text(render_analysis_html(result.explanation_text), encoding="utf-8")
        if args.output:
            args.output.write_text(diagram + "\n", encoding="utf-8")
            print(f"Diagram written to {_relativize(args.output)}")
        else:
            print(diagram)
    elif args.command == "rewrite":
        try:
            diagram = args.diagram.read_text(encoding="utf-8")
        except OSError as exc:
            parser.exit(1, f"Unable to read {args.diagram}: {exc}\n")
        print(DiagramLinkRewriter().rewrite(diagram, args.html_url, args.branch).rstrip("\n"))
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port, config=config)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])

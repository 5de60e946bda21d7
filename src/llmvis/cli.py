# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""llmvis CLI: analyze and manifest commands over a crawl dump.

Usage:
    llmvis analyze CRAWL.json [--format json|text] [--full] [-o PATH]
    llmvis manifest CRAWL.json [--draft] [-o PATH]

Global flags: -v/--verbose (debug logging, tracebacks), --json-logs.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from llmvis import __version__
from llmvis.aggregator import aggregate
from llmvis.analysis import SiteAnalysis
from llmvis.crawl_input import build_page_signals, load_crawl_dump, to_crawl_facts
from llmvis.errors import LlmVisError
from llmvis.logging_config import configure
from llmvis.manifest_drafter import ManifestDrafter, draft_request_from_analysis
from llmvis.serializer import to_json, to_text

logger = logging.getLogger(__name__)


def _analyze_dump(path: str) -> SiteAnalysis:
    dump = load_crawl_dump(path)
    return aggregate(build_page_signals(dump), to_crawl_facts(dump))


def _emit(text: str, output: str | None) -> None:
    """Write to *output* when given, else stdout."""
    if output:
        p = Path(output)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
        print(f"Saved: {p}", file=sys.stderr)
    else:
        sys.stdout.write(text)


def cmd_analyze(args: argparse.Namespace) -> None:
    """Score a crawled site and print the report."""
    analysis = _analyze_dump(args.crawl)
    if args.format == "text":
        _emit(to_text(analysis), args.output)
    else:
        _emit(to_json(analysis, full=args.full) + "\n", args.output)


def cmd_manifest(args: argparse.Namespace) -> None:
    """Print generated llms.txt (optionally an LLM draft of it)."""
    analysis = _analyze_dump(args.crawl)
    manifest = analysis.artifacts.manifest
    content = manifest.content if manifest is not None else ""

    if args.draft:
        with ManifestDrafter() as drafter:
            if not drafter.is_available():
                print("Text-generation server not reachable; using generated manifest.", file=sys.stderr)
            else:
                result = drafter.draft(draft_request_from_analysis(analysis))
                if result.used_llm:
                    content = result.content + "\n"
                else:
                    print(f"Draft failed ({result.error}); using generated manifest.", file=sys.stderr)

    if manifest is not None:
        for warning in manifest.warnings:
            print(f"warning: {warning}", file=sys.stderr)
    _emit(content, args.output)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="LLM visibility scoring for crawled e-commerce sites",
        prog="llmvis",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging and tracebacks")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    _analyze_epilog = """\
examples:
  %(prog)s crawl.json                   JSON report to stdout
  %(prog)s crawl.json --format text     Short terminal summary
  %(prog)s crawl.json -o report.json    Save to file
"""
    p_analyze = subparsers.add_parser(
        "analyze",
        help="Score a crawled site",
        epilog=_analyze_epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_analyze.add_argument("crawl", metavar="CRAWL.json", help="Crawl dump written by the crawler")
    p_analyze.add_argument("--format", choices=["json", "text"], default="json", help="Output format (default: json)")
    p_analyze.add_argument("--full", action="store_true", help="Include page body text and raw JSON-LD in JSON output")
    p_analyze.add_argument("-o", "--output", type=str, metavar="PATH", help="Write output to PATH instead of stdout")

    p_manifest = subparsers.add_parser("manifest", help="Generate llms.txt for a crawled site")
    p_manifest.add_argument("crawl", metavar="CRAWL.json", help="Crawl dump written by the crawler")
    p_manifest.add_argument(
        "--draft",
        action="store_true",
        help="Ask a local Ollama server (LLMVIS_OLLAMA_URL) for a draft; falls back to the generated file",
    )
    p_manifest.add_argument("-o", "--output", type=str, metavar="PATH", help="Write output to PATH instead of stdout")

    commands = {"analyze": cmd_analyze, "manifest": cmd_manifest}

    args = parser.parse_args(argv)
    configure(json_output=args.json_logs, level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        commands[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except SystemExit:
        raise
    except LlmVisError as e:
        print(f"error: {e}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"error: {type(e).__name__}: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

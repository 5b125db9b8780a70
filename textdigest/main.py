"""CLI entrypoint for building a digest of recently modified text files."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from textdigest.config import bootstrap_runtime_dirs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize recently modified .txt/.md/.log files into a source-linked digest."
    )
    parser.add_argument(
        "--folder",
        required=True,
        help="Folder to scan recursively.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Only include files modified in the last N days (default from DEFAULT_DAYS_BACK).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Path for the Markdown digest (default output/digest.md).",
    )
    parser.add_argument(
        "--json-output",
        default=None,
        help="Optional path for a JSON dump of the digest.",
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Documents per summarization request.")
    parser.add_argument("--concurrency", type=int, default=None, help="Maximum batches in flight at once.")
    parser.add_argument(
        "--no-conclusions",
        action="store_true",
        help="Skip the strategic conclusions request.",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Run deterministic offline mode (no API keys or external model calls).",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    from textdigest.config import LOG_LEVEL

    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    bootstrap_runtime_dirs()
    if args.offline:
        os.environ["OFFLINE_MODE"] = "1"

    from textdigest.pipeline import NoInputError, PipelineStageError, run_digest

    try:
        result = run_digest(
            args.folder,
            days=args.days,
            output=args.output,
            json_output=args.json_output,
            batch_size=args.batch_size,
            max_concurrent=args.concurrency,
            with_conclusions=not args.no_conclusions,
        )
    except NoInputError as exc:
        print(f"No input: {exc}", file=sys.stderr)
        return 1
    except PipelineStageError as exc:
        print(f"Digest failed during {exc.stage}: {exc.message}", file=sys.stderr)
        return 1

    scores = result.evaluation.scores
    print(f"Digest written to {result.output_path}")
    print(
        f"Quality: source_linked={scores.source_linked:.1%} "
        f"coverage={scores.coverage:.1%} confidence={scores.confidence:.1%} "
        f"({'passed' if result.evaluation.passed else 'below threshold'})"
    )
    for issue in result.evaluation.issues:
        print(f"  - {issue}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

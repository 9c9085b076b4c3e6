"""CLI harness: review a Terms of Use file and print the concerns as JSON."""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from tosguard.concerns.config import ConcernsSettings, resolve_budget
from tosguard.concerns.errors import ConcernsError, ConfigurationError, PipelineAborted
from tosguard.concerns.pipeline import ConcernPipeline
from tosguard.concerns.segmenter import segment_document
from tosguard.llm.settings import LLMSettings


def _cmd_review(args: argparse.Namespace) -> int:
    file_path = Path(args.file).resolve()
    if not file_path.exists():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    text = file_path.read_text(encoding="utf-8")

    overrides: dict = {}
    if args.policy:
        overrides["failure_policy"] = args.policy
    if args.mode:
        overrides["mode"] = args.mode
    if args.budget_chars:
        overrides["input_budget_chars"] = args.budget_chars
    if args.text_output:
        overrides["structured_output"] = "text"
    llm_overrides: dict = {"model": args.model} if args.model else {}

    try:
        pipeline = ConcernPipeline(LLMSettings(**llm_overrides), ConcernsSettings(**overrides))
        result = asyncio.run(pipeline.run(text))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except PipelineAborted as e:
        print(json.dumps(e.result.to_payload(), indent=2, ensure_ascii=False))
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ConcernsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
    if result.is_partial:
        print(
            f"Warning: concerns cover {result.total_segments - len(result.failures) - len(result.skipped)} "
            f"of {result.total_segments} segments",
            file=sys.stderr,
        )
    return 0


def _cmd_segments(args: argparse.Namespace) -> int:
    file_path = Path(args.file).resolve()
    if not file_path.exists():
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        return 1
    text = file_path.read_text(encoding="utf-8")
    overrides = {"input_budget_chars": args.budget_chars} if args.budget_chars else {}
    llm_overrides: dict = {"model": args.model} if args.model else {}
    try:
        budget, _ = resolve_budget(LLMSettings(**llm_overrides), ConcernsSettings(**overrides))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    for seg in segment_document(text, budget):
        print(f"segment={seg.index + 1} start={seg.start_offset} end={seg.end_offset} chars={len(seg)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Flag concerning clauses in Terms of Use / privacy policies")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log pipeline progress to stderr")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_review = sub.add_parser("review", help="Review a text file and print concerns as JSON")
    p_review.add_argument("file", help="Path to a UTF-8 text file")
    p_review.add_argument("--policy", choices=["abort", "continue"], help="Failure policy for bad segments")
    p_review.add_argument("--mode", choices=["concerns", "summary"], help="Output mode")
    p_review.add_argument("--budget-chars", type=int, help="Fixed segment size in characters")
    p_review.add_argument("--model", help="LiteLLM model id (default: LLM_MODEL or gpt-4o-mini)")
    p_review.add_argument("--text-output", action="store_true", help="Ask for a JSON array in text instead of a function call")
    p_review.set_defaults(func=_cmd_review)

    p_segments = sub.add_parser("segments", help="Show how a file would be segmented (no LLM calls)")
    p_segments.add_argument("file", help="Path to a UTF-8 text file")
    p_segments.add_argument("--budget-chars", type=int, help="Fixed segment size in characters")
    p_segments.add_argument("--model", help="LiteLLM model id used to derive the budget")
    p_segments.set_defaults(func=_cmd_segments)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

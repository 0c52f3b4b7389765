# Command line entry point: turn a Wikipedia dump into a static article bundle
from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import List, Optional

from categorizer import DEFAULT_MODEL_PATH, DEFAULT_THRESHOLD, load_categorizer
from config import DEFAULT_LANGUAGE, DEFAULT_PAGE_SIZE, DEFAULT_QUEUE_SIZE, RunConfig
from errors import BundleError
from llm_categorizer import LLM_CATEGORIZER_MODEL
from pipeline import generate
from topics import TopicFilter


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert a Wikipedia XML dump (.xml, .bz2, .gz, .xz) into a static article bundle."
    )
    parser.add_argument("input", help="Path to the dump file.")
    parser.add_argument("output", help="Directory the bundle is written to.")
    parser.add_argument("--language", default=DEFAULT_LANGUAGE, help="Wiki language code (default: %(default)s).")
    parser.add_argument(
        "--topic",
        default="none",
        choices=[topic.value for topic in TopicFilter],
        help="Only keep articles about this topic (default: keep everything).",
    )
    parser.add_argument("--exact-matches", action="store_true", help="Also write one file per raw article title.")
    parser.add_argument("--max-articles", type=int, default=None, help="Stop after this many accepted articles.")
    parser.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE, help="Articles per listing page.")
    parser.add_argument(
        "--pipelined",
        action="store_true",
        help="Read and clean on a separate thread, feeding a bounded queue.",
    )
    parser.add_argument("--queue-size", type=int, default=DEFAULT_QUEUE_SIZE, help="Capacity of the article queue.")
    parser.add_argument(
        "--categorizer",
        default="none",
        choices=["none", "keywords", "model", "llm"],
        help="How articles are assigned to categories (default: none).",
    )
    parser.add_argument("--labels", nargs="*", default=[], help="Category labels for the keyword and llm categorizers.")
    parser.add_argument("--model-path", default=str(DEFAULT_MODEL_PATH), help="Model saved by train_categorizer.py.")
    parser.add_argument("--threshold", type=float, default=DEFAULT_THRESHOLD, help="Probability needed for a model label.")
    parser.add_argument("--llm-model", default=LLM_CATEGORIZER_MODEL, help="Ollama model for the llm categorizer.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        config = RunConfig(
            input_path=args.input,
            output_path=args.output,
            language=args.language,
            topic_filter=TopicFilter.from_name(args.topic),
            exact_matches=args.exact_matches,
            max_articles=args.max_articles,
            pipelined=args.pipelined,
            queue_size=args.queue_size,
            page_size=args.page_size,
        )
        if args.categorizer == "model":
            categorizer = load_categorizer("model", model_path=args.model_path, threshold=args.threshold)
        elif args.categorizer == "llm":
            categorizer = load_categorizer("llm", labels=args.labels, model=args.llm_model)
        else:
            categorizer = load_categorizer(args.categorizer, labels=args.labels)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    print(f"Generating bundle from {config.input_path} into {config.output_path}...")
    start_time = time.time()
    try:
        summary = generate(config, categorizer)
    except BundleError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(f"Last completed stage: {exc.last_stage}", file=sys.stderr)
        return 1

    print(
        f"Accepted {summary.accepted} articles, rejected {summary.rejected}, "
        f"skipped {summary.skipped_malformed} malformed "
        f"({summary.redirects} redirects, {summary.duplicates} duplicates)."
    )
    print(f"✔ Bundle generation finished in {time.time() - start_time:.2f} seconds.")
    return 0


if __name__ == "__main__":
    sys.exit(main())

"""CLI entrypoint for search, crawl and workflow digest operations."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List

from core import DigestFormat
from digest import build_workflow_digest
from jobs import crawl_with_polling, quick_search, search_with_polling
from sources import ZipfClient
from utils import configure_logging, get_logger
from utils.exceptions import ZipfMonitorError


def _csv(text: str) -> List[str]:
    return [item.strip() for item in str(text or "").split(",") if item.strip()]


def _json(text: str):
    raw = str(text or "").strip()
    if not raw:
        return None
    return json.loads(raw)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ZipfAI monitoring CLI")
    parser.add_argument("--verbose-log", action="store_true", help="debug logging on stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    quick = sub.add_parser("quick-search")
    quick.add_argument("query")
    quick.add_argument("--max-results", type=int, default=10)
    quick.add_argument("--include-domains", default="")
    quick.add_argument("--exclude-domains", default="")

    search = sub.add_parser("search")
    search.add_argument("query")
    search.add_argument("--max-results", type=int, default=10)
    search.add_argument("--include-domains", default="")
    search.add_argument("--exclude-domains", default="")
    search.add_argument("--interpret-query", action="store_true")
    search.add_argument("--extract-metadata", action="store_true")
    search.add_argument("--rerank", action="store_true")
    search.add_argument("--suggestions", type=int, default=0, help="number of follow-up queries (0 = off)")
    search.add_argument("--summary", action="store_true")
    search.add_argument("--timeout", type=float, default=None)

    crawl = sub.add_parser("crawl")
    crawl.add_argument("urls", nargs="+")
    crawl.add_argument("--max-pages", type=int, default=None)
    crawl.add_argument("--schema-json", default="")
    crawl.add_argument("--classify", action="store_true")
    crawl.add_argument("--summary", action="store_true")
    crawl.add_argument("--no-wait", action="store_true")
    crawl.add_argument("--timeout", type=float, default=None)

    digest = sub.add_parser("digest")
    digest.add_argument("--since", default=None, help="ISO 8601 watermark (default: 24h ago)")
    digest.add_argument("--include-inactive", action="store_true")
    digest.add_argument("--max-workflows", type=int, default=20)
    digest.add_argument("--verbose", action="store_true")
    digest.add_argument(
        "--format",
        default=DigestFormat.JSON.value,
        choices=[fmt.value for fmt in DigestFormat],
    )
    return parser


async def run_command(args: argparse.Namespace) -> Dict[str, Any]:
    async with ZipfClient() as client:
        if args.command == "quick-search":
            return await quick_search(
                client,
                args.query,
                max_results=args.max_results,
                include_domains=_csv(args.include_domains),
                exclude_domains=_csv(args.exclude_domains),
            )

        if args.command == "search":
            return await search_with_polling(
                client,
                args.query,
                max_results=args.max_results,
                include_domains=_csv(args.include_domains) or None,
                exclude_domains=_csv(args.exclude_domains) or None,
                interpret_query=args.interpret_query,
                extract_metadata=args.extract_metadata,
                rerank_results=args.rerank,
                generate_suggestions=args.suggestions > 0,
                num_suggestions=args.suggestions or None,
                generate_summary=args.summary,
                timeout_sec=args.timeout,
            )

        if args.command == "crawl":
            return await crawl_with_polling(
                client,
                args.urls,
                max_pages=args.max_pages,
                extraction_schema=_json(args.schema_json),
                classify_documents=args.classify,
                generate_summary=args.summary,
                wait_for_results=not args.no_wait,
                timeout_sec=args.timeout,
            )

        return await build_workflow_digest(
            client,
            since=args.since,
            include_inactive=args.include_inactive,
            max_workflows=args.max_workflows,
            verbose=args.verbose,
            format=args.format,
        )


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(level=logging.DEBUG if args.verbose_log else logging.WARNING)
    get_logger().debug(f"Running command: {args.command}")

    try:
        result = asyncio.run(run_command(args))
    except (ZipfMonitorError, ValueError) as exc:
        print(json.dumps({"error": str(exc)}, ensure_ascii=False), file=sys.stderr)
        sys.exit(1)

    if args.command == "digest" and args.format in {DigestFormat.BRIEFING.value, DigestFormat.BRIEFING_LLM.value}:
        print(result.get("formatted_output", ""))
        return
    print(json.dumps(result, ensure_ascii=False, indent=2, default=str))


if __name__ == "__main__":
    main()

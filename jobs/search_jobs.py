"""Single-job search and crawl paths built on the backoff poller."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from jobs.features import FeaturePredicate, job_completed, metadata_settled, summary_settled
from jobs.poller import AsyncJobPoller
from sources import ZipfClient


logger = logging.getLogger(__name__)


async def quick_search(
    client: ZipfClient,
    query: str,
    max_results: int = 10,
    include_domains: Optional[List[str]] = None,
    exclude_domains: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Lightweight search; results come back in the first response."""
    return await client.quick_search(
        query,
        max_results=max_results,
        include_domains=include_domains,
        exclude_domains=exclude_domains,
    )


async def search_with_polling(
    client: ZipfClient,
    query: str,
    *,
    max_results: int = 10,
    include_domains: Optional[List[str]] = None,
    exclude_domains: Optional[List[str]] = None,
    interpret_query: bool = False,
    extract_metadata: bool = False,
    rerank_results: bool = False,
    generate_suggestions: bool = False,
    num_suggestions: Optional[int] = None,
    generate_summary: bool = False,
    timeout_sec: Optional[float] = None,
    poller: Optional[AsyncJobPoller] = None,
) -> Dict[str, Any]:
    """
    Submit a full search and wait for the async features that were requested.

    Only the summary and metadata extraction run asynchronously; without
    either the submission response is returned as-is.
    """
    initial = await client.search(
        query,
        max_results=max_results,
        include_domains=include_domains,
        exclude_domains=exclude_domains,
        interpret_query=interpret_query,
        extract_metadata=extract_metadata,
        rerank_results=rerank_results,
        generate_suggestions=generate_suggestions,
        num_suggestions=num_suggestions,
        generate_summary=generate_summary,
    )

    predicates: List[FeaturePredicate] = []
    if generate_summary:
        predicates.append(summary_settled)
    if extract_metadata:
        predicates.append(metadata_settled)

    poller = poller or AsyncJobPoller(client.get_search_job)
    outcome = await poller.poll(initial, predicates, budget_sec=timeout_sec)
    if outcome.reason == "timeout":
        logger.info(f"Search '{query}' returned partial results after {outcome.attempts} polls")
    return outcome.snapshot.payload


async def crawl_with_polling(
    client: ZipfClient,
    urls: List[str],
    *,
    max_pages: Optional[int] = None,
    extraction_schema: Optional[Dict[str, Any]] = None,
    classify_documents: bool = False,
    generate_summary: bool = False,
    wait_for_results: bool = True,
    timeout_sec: Optional[float] = None,
    poller: Optional[AsyncJobPoller] = None,
) -> Dict[str, Any]:
    """Submit a crawl and wait for completion and/or its summary."""
    initial = await client.crawl(
        urls,
        max_pages=max_pages,
        extraction_schema=extraction_schema,
        classify_documents=classify_documents,
        generate_summary=generate_summary,
    )

    predicates: List[FeaturePredicate] = []
    if wait_for_results:
        predicates.append(job_completed)
    if generate_summary:
        predicates.append(summary_settled)

    poller = poller or AsyncJobPoller(client.get_crawl)
    outcome = await poller.poll(initial, predicates, budget_sec=timeout_sec)
    if outcome.reason == "timeout":
        logger.info(f"Crawl of {len(urls)} url(s) returned partial results after {outcome.attempts} polls")
    return outcome.snapshot.payload

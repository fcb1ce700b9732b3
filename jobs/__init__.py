"""Asynchronous job polling and the single-job search/crawl paths."""

from .features import FeaturePredicate, job_completed, metadata_settled, summary_settled
from .poller import AsyncJobPoller
from .search_jobs import crawl_with_polling, quick_search, search_with_polling

__all__ = [
    "AsyncJobPoller",
    "FeaturePredicate",
    "crawl_with_polling",
    "job_completed",
    "metadata_settled",
    "quick_search",
    "search_with_polling",
    "summary_settled",
]

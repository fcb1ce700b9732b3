from __future__ import annotations

from typing import Any, Dict, List

import pytest

from jobs import AsyncJobPoller, crawl_with_polling, quick_search, search_with_polling


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


class _FakeZipfClient:
    def __init__(self, submission: Dict[str, Any], polls: List[Dict[str, Any]]) -> None:
        self.submission = submission
        self.polls = list(polls)
        self.search_kwargs: Dict[str, Any] = {}
        self.crawl_kwargs: Dict[str, Any] = {}
        self.polled: List[str] = []

    async def quick_search(self, query: str, **kwargs):
        return {"query": query, "results": [{"url": "https://example.com/a"}], **kwargs}

    async def search(self, query: str, **kwargs):
        self.search_kwargs = {"query": query, **kwargs}
        return dict(self.submission)

    async def crawl(self, urls, **kwargs):
        self.crawl_kwargs = {"urls": list(urls), **kwargs}
        return dict(self.submission)

    async def _next(self, job_id: str):
        self.polled.append(job_id)
        if not self.polls:
            return None
        return self.polls.pop(0)

    get_search_job = _next
    get_crawl = _next


def _poller_for(fetch, clock: _FakeClock) -> AsyncJobPoller:
    return AsyncJobPoller(fetch, sleep=clock.sleep, clock=clock)


@pytest.mark.asyncio
async def test_quick_search_passes_filters_through() -> None:
    client = _FakeZipfClient({}, [])

    result = await quick_search(client, "robotics", max_results=3, include_domains=["arxiv.org"])

    assert result["query"] == "robotics"
    assert result["max_results"] == 3
    assert result["include_domains"] == ["arxiv.org"]


@pytest.mark.asyncio
async def test_search_without_async_features_returns_submission() -> None:
    submission = {"search_job_id": "s1", "status": "completed", "results": [{"url": "https://a.example"}]}
    client = _FakeZipfClient(submission, [])

    result = await search_with_polling(client, "ai chips", rerank_results=True)

    assert result == submission
    assert client.polled == []
    assert client.search_kwargs["rerank_results"] is True


@pytest.mark.asyncio
async def test_search_waits_for_summary_and_metadata() -> None:
    submission = {
        "search_job_id": "s1",
        "status": "completed",
        "summary": {"status": "pending"},
        "query_interpretation": {"metadata_status": "processing"},
    }
    client = _FakeZipfClient(
        submission,
        [
            {
                "search_job_id": "s1",
                "status": "completed",
                "summary": {"status": "completed", "content": "Summary text"},
                "query_interpretation": {"metadata_status": "processing"},
            },
            {
                "search_job_id": "s1",
                "status": "completed",
                "summary": {"status": "completed", "content": "Summary text"},
                "query_interpretation": {"metadata_status": "completed"},
                "results": [{"url": "https://b.example", "metadata": {"author": "x"}}],
            },
        ],
    )
    clock = _FakeClock()

    result = await search_with_polling(
        client,
        "ai chips",
        generate_summary=True,
        extract_metadata=True,
        poller=_poller_for(client.get_search_job, clock),
    )

    assert client.polled == ["s1", "s1"]
    assert result["summary"]["content"] == "Summary text"
    assert result["results"][0]["metadata"] == {"author": "x"}


@pytest.mark.asyncio
async def test_crawl_times_out_with_partial_results() -> None:
    submission = {"id": "c1", "status": "running"}
    client = _FakeZipfClient(submission, [{"id": "c1", "status": "running", "results": [{"url": "https://p1"}]}])
    clock = _FakeClock()

    result = await crawl_with_polling(
        client,
        ["https://example.com"],
        max_pages=5,
        timeout_sec=5,
        poller=_poller_for(client.get_crawl, clock),
    )

    assert result["status"] == "running"
    assert result["results"] == [{"url": "https://p1"}]
    assert clock.now == pytest.approx(5.0)
    assert client.crawl_kwargs["max_pages"] == 5


@pytest.mark.asyncio
async def test_crawl_without_waiting_returns_immediately() -> None:
    submission = {"id": "c2", "status": "pending"}
    client = _FakeZipfClient(submission, [])

    result = await crawl_with_polling(client, ["https://example.com"], wait_for_results=False)

    assert result == submission
    assert client.polled == []

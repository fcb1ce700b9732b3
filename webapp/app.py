"""FastAPI app exposing the digest and search tools over HTTP."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from core import DigestFormat
from digest import build_workflow_digest
from jobs import crawl_with_polling, quick_search, search_with_polling
from sources import ZipfClient
from utils.exceptions import ConfigurationError, JobFailedError, ZipfAPIError


logger = logging.getLogger(__name__)

app = FastAPI(title="Zipf Monitor API")


def create_client() -> ZipfClient:
    return ZipfClient()


class DigestPayload(BaseModel):
    since: Optional[str] = None
    include_inactive: bool = False
    max_workflows: int = Field(default=20, ge=1, le=50)
    verbose: bool = False
    format: DigestFormat = DigestFormat.JSON


class QuickSearchPayload(BaseModel):
    query: str = Field(max_length=1000)
    max_results: int = Field(default=10, ge=1, le=20)
    include_domains: List[str] = Field(default_factory=list)
    exclude_domains: List[str] = Field(default_factory=list)

    @field_validator("query")
    @classmethod
    def _strip_required(cls, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("value is required")
        return text


class SearchPayload(QuickSearchPayload):
    interpret_query: bool = False
    extract_metadata: bool = False
    rerank_results: bool = False
    generate_suggestions: bool = False
    num_suggestions: Optional[int] = Field(default=None, ge=1, le=10)
    generate_summary: bool = False
    timeout_sec: Optional[float] = Field(default=None, ge=5, le=300)


class CrawlPayload(BaseModel):
    urls: List[str] = Field(min_length=1)
    max_pages: Optional[int] = Field(default=None, ge=1)
    extraction_schema: Optional[Dict[str, Any]] = None
    classify_documents: bool = False
    generate_summary: bool = False
    wait_for_results: bool = True
    timeout_sec: Optional[float] = Field(default=None, ge=5, le=300)


def _open_client() -> ZipfClient:
    try:
        return create_client()
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _upstream_error(exc: Exception) -> HTTPException:
    logger.warning(f"Upstream call failed: {exc}")
    if isinstance(exc, JobFailedError):
        snapshot = exc.snapshot.payload if exc.snapshot is not None else None
        return HTTPException(status_code=502, detail={"error": exc.message, "job": snapshot})
    return HTTPException(status_code=502, detail=str(exc))


@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"ok": True, "ts": datetime.now(timezone.utc).isoformat(timespec="seconds")}


@app.post("/api/digest")
async def workflow_digest(payload: DigestPayload) -> Dict[str, Any]:
    async with _open_client() as client:
        try:
            return await build_workflow_digest(
                client,
                since=payload.since,
                include_inactive=payload.include_inactive,
                max_workflows=payload.max_workflows,
                verbose=payload.verbose,
                format=payload.format,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except ZipfAPIError as exc:
            raise _upstream_error(exc) from exc


@app.post("/api/search/quick")
async def quick_search_endpoint(payload: QuickSearchPayload) -> Dict[str, Any]:
    async with _open_client() as client:
        try:
            return await quick_search(
                client,
                payload.query,
                max_results=payload.max_results,
                include_domains=payload.include_domains,
                exclude_domains=payload.exclude_domains,
            )
        except ZipfAPIError as exc:
            raise _upstream_error(exc) from exc


@app.post("/api/search")
async def search_endpoint(payload: SearchPayload) -> Dict[str, Any]:
    async with _open_client() as client:
        try:
            return await search_with_polling(
                client,
                payload.query,
                max_results=payload.max_results,
                include_domains=payload.include_domains or None,
                exclude_domains=payload.exclude_domains or None,
                interpret_query=payload.interpret_query,
                extract_metadata=payload.extract_metadata,
                rerank_results=payload.rerank_results,
                generate_suggestions=payload.generate_suggestions,
                num_suggestions=payload.num_suggestions,
                generate_summary=payload.generate_summary,
                timeout_sec=payload.timeout_sec,
            )
        except (ZipfAPIError, JobFailedError) as exc:
            raise _upstream_error(exc) from exc


@app.post("/api/crawl")
async def crawl_endpoint(payload: CrawlPayload) -> Dict[str, Any]:
    async with _open_client() as client:
        try:
            return await crawl_with_polling(
                client,
                payload.urls,
                max_pages=payload.max_pages,
                extraction_schema=payload.extraction_schema,
                classify_documents=payload.classify_documents,
                generate_summary=payload.generate_summary,
                wait_for_results=payload.wait_for_results,
                timeout_sec=payload.timeout_sec,
            )
        except (ZipfAPIError, JobFailedError) as exc:
            raise _upstream_error(exc) from exc

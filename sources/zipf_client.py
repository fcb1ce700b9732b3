"""
ZipfAI Client
远程内容发现服务的异步 HTTP 客户端 (外部协作方边界)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import get_settings
from utils.exceptions import ConfigurationError, TransientFetchError, ZipfAPIError


logger = logging.getLogger(__name__)


def _compact_body(body: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in body.items() if value is not None}


class ZipfClient:
    """
    ZipfAI API 客户端
    只负责请求构造与错误分类，不做业务层重试
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key or settings.zipf.resolve_api_key()
        if not self.api_key:
            raise ConfigurationError(
                "ZipfAI API key is not configured",
                {"env": "ZIPF_API_KEY", "config_path": str(settings.zipf.config_path)},
            )
        self.base_url = str(base_url or settings.zipf.api_base_url).rstrip("/")
        self._timeout = float(timeout if timeout is not None else settings.general.request_timeout)
        self._max_retries = max(1, int(max_retries if max_retries is not None else settings.general.max_retries))
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self._timeout),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """发送请求并把 httpx 异常归类为 ZipfAPIError / TransientFetchError"""
        try:
            # 仅对连接失败做传输层重试
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_retries),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(httpx.ConnectError),
                reraise=True,
            ):
                with attempt:
                    response = await self._client.request(
                        method,
                        path,
                        params=_compact_body(params or {}) or None,
                        json=json_body,
                    )
        except httpx.TimeoutException as exc:
            raise TransientFetchError(f"{method} {path} timed out", path=path) from exc
        except httpx.HTTPError as exc:
            raise TransientFetchError(f"{method} {path} failed: {exc}", path=path) from exc

        if response.status_code >= 500:
            raise TransientFetchError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                path=path,
            )
        if response.status_code >= 400:
            raise ZipfAPIError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                path=path,
                body=response.text[:500],
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ZipfAPIError(f"{method} {path} returned invalid JSON", status_code=response.status_code) from exc

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def quick_search(
        self,
        query: str,
        max_results: int = 10,
        include_domains: Optional[List[str]] = None,
        exclude_domains: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        body = {
            "query": query,
            "max_results": max_results,
            "include_domains": list(include_domains or []),
            "exclude_domains": list(exclude_domains or []),
        }
        return await self._request("POST", "/search/quick", json_body=body)

    async def search(
        self,
        query: str,
        max_results: int = 10,
        include_domains: Optional[List[str]] = None,
        exclude_domains: Optional[List[str]] = None,
        interpret_query: bool = False,
        extract_metadata: bool = False,
        rerank_results: bool = False,
        generate_suggestions: bool = False,
        suggestions_top_n: Optional[int] = None,
        num_suggestions: Optional[int] = None,
        generate_summary: bool = False,
    ) -> Dict[str, Any]:
        body = _compact_body(
            {
                "query": query,
                "max_results": max_results,
                "include_domains": include_domains,
                "exclude_domains": exclude_domains,
                "interpret_query": interpret_query,
                "extract_metadata": extract_metadata,
                "rerank_results": rerank_results,
                "generate_suggestions": generate_suggestions,
                "suggestions_top_n": suggestions_top_n,
                "num_suggestions": num_suggestions,
                "generate_summary": generate_summary,
            }
        )
        return await self._request("POST", "/search", json_body=body)

    async def get_search_job(self, job_id: str) -> Optional[Dict[str, Any]]:
        """轮询用: 失败时记录日志并返回 None"""
        try:
            return await self._request("GET", f"/search/jobs/{job_id}")
        except ZipfAPIError as exc:
            logger.warning(f"Get search job {job_id} failed: {exc}")
            return None

    # ------------------------------------------------------------------
    # Crawl
    # ------------------------------------------------------------------

    async def crawl(
        self,
        urls: List[str],
        max_pages: Optional[int] = None,
        extraction_schema: Optional[Dict[str, Any]] = None,
        classify_documents: bool = False,
        generate_summary: bool = False,
    ) -> Dict[str, Any]:
        body = _compact_body(
            {
                "urls": list(urls),
                "max_pages": max_pages,
                "extraction_schema": extraction_schema,
                "classify_documents": classify_documents,
                "generate_summary": generate_summary,
            }
        )
        return await self._request("POST", "/crawl", json_body=body)

    async def get_crawl(self, crawl_id: str) -> Optional[Dict[str, Any]]:
        """轮询用: 失败时记录日志并返回 None"""
        try:
            return await self._request("GET", f"/crawl/{crawl_id}")
        except ZipfAPIError as exc:
            logger.warning(f"Get crawl {crawl_id} failed: {exc}")
            return None

    # ------------------------------------------------------------------
    # Workflows
    # ------------------------------------------------------------------

    async def list_workflows(
        self,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Dict[str, Any]:
        params = {"status": status, "limit": limit, "offset": offset}
        return await self._request("GET", "/workflows", params=params)

    async def get_workflow_timeline(self, workflow_id: str, limit: int = 20) -> Dict[str, Any]:
        return await self._request("GET", f"/workflows/{workflow_id}/timeline", params={"limit": limit})

    async def get_workflow_diff(self, workflow_id: str, since: Optional[str] = None) -> Dict[str, Any]:
        return await self._request("GET", f"/workflows/{workflow_id}/diff", params={"since": since})

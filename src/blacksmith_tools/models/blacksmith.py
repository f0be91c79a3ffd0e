# src/blacksmith_tools/models/blacksmith.py
import json
from typing import Any, Dict, List, Optional

import httpx

from blacksmith_tools.config import is_debug_mode
from blacksmith_tools.errors import ApiError, ConfigurationError, SessionExpiredError
from blacksmith_tools.logger import logger

BASE_URL = "https://backend.blacksmith.sh/api/user/github/orgs"
APP_ORIGIN = "https://app.blacksmith.sh"
REQUEST_TIMEOUT = 30.0


def to_iso_date(date: str, end_of_day: bool = False) -> str:
    """YYYY-MM-DD to the ISO 8601 timestamps the API expects; ISO input passes through."""
    if "T" in date:
        return date
    return f"{date}T23:59:59Z" if end_of_day else f"{date}T00:00:00Z"


class BlacksmithClient:
    """
    Async client for the (undocumented) Blacksmith dashboard API.
    Authenticates with the dashboard's Laravel session cookie.
    """

    def __init__(
        self,
        session_cookie: str,
        org: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.org = org
        self._debug = is_debug_mode()
        # Cookie values from the browser store are already URL-encoded; send them raw.
        self.client = httpx.AsyncClient(
            headers={
                "Cookie": f"blacksmith_session={session_cookie}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Origin": APP_ORIGIN,
                "Referer": f"{APP_ORIGIN}/",
            },
            timeout=REQUEST_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    def set_org(self, org: str) -> None:
        self.org = org

    def _get_org(self) -> str:
        if not self.org:
            raise ConfigurationError(
                "No organization set. Use list_orgs to see available orgs, then set BLACKSMITH_ORG."
            )
        return self.org

    def _url(self, path: str) -> str:
        return f"{BASE_URL}/{path}" if path else BASE_URL

    async def _send(self, path: str, params: Any = None) -> httpx.Response:
        url = self._url(path)
        if self._debug:
            logger.debug("Requesting %s params=%s", url, params)
        response = await self.client.get(url, params=params)

        if response.status_code == 401:
            raise SessionExpiredError()
        if response.is_error:
            logger.error(f"API error: {response.status_code} {response.text[:500]}")
            raise ApiError(f"API request failed: {response.status_code}", response.status_code)
        return response

    async def _request(self, path: str, params: Any = None) -> Any:
        response = await self._send(path, params)
        return response.json()

    async def _org_request(self, endpoint: str, params: Any = None) -> Any:
        org = self._get_org()
        return await self._request(f"{org}/{endpoint}", params)

    # Organization

    async def list_orgs(self) -> List[Dict[str, Any]]:
        return await self._request("")

    async def is_personal_org(self) -> bool:
        result = await self._org_request("is-personal-org")
        return bool(result.get("is_personal"))

    async def has_onboarded(self) -> bool:
        result = await self._org_request("has-onboarded")
        return bool(result.get("has_onboarded"))

    async def get_runner_region(self) -> Optional[str]:
        result = await self._org_request("runner-region")
        return result.get("region")

    # Usage & billing

    async def get_current_usage(self) -> Dict[str, Any]:
        return await self._org_request("metrics/core-usage/current")

    async def get_invoice_amount(self) -> Dict[str, Any]:
        return await self._org_request("metrics/invoice-amount")

    async def get_usage_summary(self) -> Dict[str, Any]:
        return await self._org_request("usage")

    # Workflow runs

    async def list_runs(
        self,
        start_date: str,
        end_date: str,
        limit: Optional[int] = None,
        statuses: Optional[List[str]] = None,
        branches: Optional[List[str]] = None,
        workflows: Optional[List[str]] = None,
        users: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        """List workflow runs in a date window; the API returns a bare array."""
        params = [
            ("start_date", to_iso_date(start_date)),
            ("end_date", to_iso_date(end_date, end_of_day=True)),
        ]
        if limit:
            params.append(("limit", str(limit)))
        for key, values in (
            ("statuses[]", statuses),
            ("branches[]", branches),
            ("workflows[]", workflows),
            ("users[]", users),
        ):
            for value in values or []:
                params.append((key, value))
        return await self._org_request("metrics/actions/workflows/runs", params)

    async def get_run(self, run_id: str) -> Dict[str, Any]:
        return await self._org_request(f"metrics/actions/workflows/runs/{run_id}")

    # Jobs

    async def get_job(self, run_id: str, job_id: str) -> Dict[str, Any]:
        response = await self._org_request(f"metrics/actions/workflows/runs/{run_id}/jobs/{job_id}")
        return response.get("job", response)

    async def get_job_metrics(self, run_id: str, job_id: str, vm_id: str) -> Dict[str, Any]:
        return await self._org_request(
            f"metrics/actions/workflows/runs/{run_id}/jobs/{job_id}/metrics",
            {"vm_id": vm_id},
        )

    async def get_job_logs(self, job_id: str, limit: Optional[int] = None, vm_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch a job's log stream.

        The endpoint answers with newline-delimited JSON; each line carries its
        text in one of log/message/line/content. Lines that are not JSON are
        kept verbatim.
        """
        params = {"job_id": job_id}
        if limit:
            params["limit"] = str(limit)
        if vm_id:
            params["vm_id"] = vm_id

        org = self._get_org()
        response = await self._send(f"{org}/metrics/logs/job/stream", params)

        logs = []
        raw_lines = []
        for line in response.text.strip().split("\n"):
            if not line.strip():
                continue
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                logs.append(line)
                continue
            raw_lines.append(parsed)
            if isinstance(parsed, dict):
                text = parsed.get("log") or parsed.get("message") or parsed.get("line") or parsed.get("content")
                if text:
                    logs.append(text)

        return {"logs": "\n".join(logs), "raw_lines": raw_lines}

    # Tests

    async def get_job_tests(self, run_id: str, job_id: str, status: Optional[str] = None) -> Dict[str, Any]:
        params = {"status": status} if status else None
        return await self._org_request(f"metrics/actions/workflows/runs/{run_id}/jobs/{job_id}/tests", params)

    # Logs

    async def search_logs(self, start_time: str, end_time: str, query: Optional[str] = None) -> Dict[str, Any]:
        params = {"start_time": start_time, "end_time": end_time}
        if query:
            params["query"] = query
        return await self._org_request("metrics/logs/search", params)

    # Cache

    async def get_cache_stats(self, include_history: bool = False) -> List[Dict[str, Any]]:
        return await self._org_request("metrics/cache", {"include_history": str(include_history).lower()})

    async def get_cache_entries(self, repository: str, per_page: int = 20) -> Dict[str, Any]:
        return await self._org_request("metrics/cache/entries", {"repository": repository, "per_page": str(per_page)})

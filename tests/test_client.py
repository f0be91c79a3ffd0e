import json

import httpx
import pytest

from blacksmith_tools.errors import ApiError, ConfigurationError, SessionExpiredError
from blacksmith_tools.models.blacksmith import BASE_URL, BlacksmithClient, to_iso_date


def make_client(handler, org="acme"):
    return BlacksmithClient("abc%3D%3D", org=org, transport=httpx.MockTransport(handler))


class TestBlacksmithClient:
    @pytest.mark.asyncio
    async def test_sends_raw_session_cookie(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=[{"login": "acme", "id": 1, "name": "Acme"}])

        client = make_client(handler)
        orgs = await client.list_orgs()
        await client.aclose()

        request = seen["request"]
        assert str(request.url) == BASE_URL
        assert request.headers["Cookie"] == "blacksmith_session=abc%3D%3D"
        assert request.headers["Origin"] == "https://app.blacksmith.sh"
        assert orgs[0]["login"] == "acme"

    @pytest.mark.asyncio
    async def test_unauthorized_is_session_expired(self):
        client = make_client(lambda request: httpx.Response(401))
        with pytest.raises(SessionExpiredError):
            await client.get_current_usage()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_server_error_is_api_error(self):
        client = make_client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(ApiError) as excinfo:
            await client.get_invoice_amount()
        assert excinfo.value.status_code == 500
        await client.aclose()

    @pytest.mark.asyncio
    async def test_org_scoped_call_needs_org(self):
        client = make_client(lambda request: httpx.Response(200, json={}), org=None)
        with pytest.raises(ConfigurationError):
            await client.get_usage_summary()
        await client.aclose()

    @pytest.mark.asyncio
    async def test_list_runs_query(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, json=[])

        client = make_client(handler)
        await client.list_runs("2026-10-01", "2026-10-07", statuses=["failure"], branches=["main"])
        await client.aclose()

        url = seen["url"]
        assert url.path.endswith("/acme/metrics/actions/workflows/runs")
        assert url.params["start_date"] == "2026-10-01T00:00:00Z"
        assert url.params["end_date"] == "2026-10-07T23:59:59Z"
        assert url.params.get_list("statuses[]") == ["failure"]
        assert url.params.get_list("branches[]") == ["main"]
        assert "users[]" not in url.params

    @pytest.mark.asyncio
    async def test_get_job_unwraps(self):
        client = make_client(lambda request: httpx.Response(200, json={"job": {"id": 7, "name": "build"}}))
        job = await client.get_job("1", "7")
        await client.aclose()
        assert job == {"id": 7, "name": "build"}

    @pytest.mark.asyncio
    async def test_job_logs_ndjson(self):
        body = "\n".join(
            [
                json.dumps({"log": "first"}),
                json.dumps({"message": "second"}),
                "",
                "not json at all",
                json.dumps({"line": "third"}),
                json.dumps({"other": "ignored"}),
            ]
        )
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(200, text=body)

        client = make_client(handler)
        result = await client.get_job_logs("42", limit=10)
        await client.aclose()

        assert result["logs"] == "first\nsecond\nnot json at all\nthird"
        assert len(result["raw_lines"]) == 4
        assert seen["url"].params["job_id"] == "42"
        assert seen["url"].params["limit"] == "10"


def test_to_iso_date():
    assert to_iso_date("2026-01-02") == "2026-01-02T00:00:00Z"
    assert to_iso_date("2026-01-02", end_of_day=True) == "2026-01-02T23:59:59Z"
    assert to_iso_date("2026-01-02T10:00:00Z") == "2026-01-02T10:00:00Z"

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from blacksmith_tools.config import CONFIG
from blacksmith_tools.errors import SessionExpiredError
from blacksmith_tools.main import app
from blacksmith_tools.utils.browser import NotFound, Token, Unavailable


@pytest.fixture
def http():
    with TestClient(app) as client:
        yield client


def fake_create_client(api):
    @asynccontextmanager
    async def create_client(org=None):
        yield api

    return create_client


class TestToolEndpoints:
    def test_list_tools(self, http):
        response = http.get("/tools")

        assert response.status_code == 200
        names = [tool["name"] for tool in response.json()["tools"]]
        assert len(names) == 15
        assert "get_failed_tests" in names

    def test_unknown_tool(self, http):
        response = http.post("/tools/drop_tables", json={})
        assert response.status_code == 404

    def test_invalid_arguments_skip_credential_lookup(self, http):
        with patch("blacksmith_tools.endpoints.tools.create_client") as create_client:
            response = http.post("/tools/get_run", json={})

        assert response.status_code == 422
        create_client.assert_not_called()

    def test_tool_success(self, http):
        api = MagicMock()
        api.get_usage_summary = AsyncMock(return_value={"billable_minutes": 100, "free_minutes": 3000})

        with patch("blacksmith_tools.endpoints.tools.create_client", fake_create_client(api)):
            response = http.post("/tools/get_usage_summary")

        assert response.status_code == 200
        body = response.json()
        assert body["tool"] == "get_usage_summary"
        assert body["result"]["remaining_free_minutes"] == 2900

    def test_expired_session(self, http):
        api = MagicMock()
        api.list_orgs = AsyncMock(side_effect=SessionExpiredError())

        with patch("blacksmith_tools.endpoints.tools.create_client", fake_create_client(api)):
            response = http.post("/tools/list_orgs", json={})

        assert response.status_code == 401
        assert response.json()["error"] == "SESSION_EXPIRED"
        assert "hint" in response.json()

    def test_missing_session(self, http):
        with patch("blacksmith_tools.services.blacksmith_client.get_session_cookie", return_value=None):
            response = http.post("/tools/list_orgs", json={})

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "CONFIGURATION_ERROR"
        assert "BLACKSMITH_SESSION_COOKIE" in body["message"]


class TestSessionEndpoint:
    @pytest.mark.parametrize(
        "outcome, status",
        [
            (NotFound(), "not_found"),
            (Unavailable("keychain locked"), "unavailable"),
        ],
    )
    def test_no_token(self, http, outcome, status):
        resolver = MagicMock()
        resolver.resolve.return_value = outcome

        with patch("blacksmith_tools.endpoints.tools.build_resolver", return_value=resolver):
            body = http.get("/session").json()

        assert body["status"] == status
        assert body["reason"] == outcome.reason

    def test_token_value_is_not_returned(self, http):
        resolver = MagicMock()
        resolver.resolve.return_value = Token("secret-session", cookie_name="blacksmith_session")

        with patch("blacksmith_tools.endpoints.tools.build_resolver", return_value=resolver):
            response = http.get("/session")

        assert response.json() == {"status": "token", "source": "browser", "cookie_name": "blacksmith_session"}
        assert "secret-session" not in response.text


class TestApiKey:
    @pytest.fixture
    def api_key(self):
        previous = CONFIG.get("Auth", "api_key", fallback="")
        CONFIG.set("Auth", "api_key", "s3cret")
        yield "s3cret"
        CONFIG.set("Auth", "api_key", previous)

    def test_missing_key_rejected(self, http, api_key):
        assert http.get("/tools").status_code == 401

    def test_wrong_key_rejected(self, http, api_key):
        response = http.get("/tools", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_valid_key_accepted(self, http, api_key):
        response = http.get("/tools", headers={"Authorization": f"Bearer {api_key}"})
        assert response.status_code == 200

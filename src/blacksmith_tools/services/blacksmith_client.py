# src/blacksmith_tools/services/blacksmith_client.py
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi.concurrency import run_in_threadpool

from blacksmith_tools.config import get_org
from blacksmith_tools.errors import ConfigurationError
from blacksmith_tools.logger import logger
from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.utils.browser import get_session_cookie

MISSING_SESSION_MESSAGE = (
    "Could not find Blacksmith session. Either:\n"
    "1. Log into app.blacksmith.sh in Chrome, or\n"
    "2. Set BLACKSMITH_SESSION_COOKIE environment variable"
)


async def resolve_session_cookie() -> str:
    """Fresh credential resolution; the store read and keychain call run off the event loop."""
    session_cookie = await run_in_threadpool(get_session_cookie)
    if not session_cookie:
        raise ConfigurationError(MISSING_SESSION_MESSAGE)
    return session_cookie


@asynccontextmanager
async def create_client(org: Optional[str] = None) -> AsyncIterator[BlacksmithClient]:
    """Client for a single tool call. Nothing about the session outlives the call."""
    session_cookie = await resolve_session_cookie()
    client = BlacksmithClient(session_cookie, org=org or get_org())
    logger.debug("Blacksmith client initialized")
    try:
        yield client
    finally:
        await client.aclose()

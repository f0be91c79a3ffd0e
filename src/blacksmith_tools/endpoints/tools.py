# src/blacksmith_tools/endpoints/tools.py
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from blacksmith_tools.config import is_debug_mode
from blacksmith_tools.errors import (
    ApiError,
    BlacksmithError,
    ConfigurationError,
    SessionExpiredError,
    UnknownToolError,
    format_error_response,
)
from blacksmith_tools.logger import logger
from blacksmith_tools.services.blacksmith_client import create_client
from blacksmith_tools.tools import get_tool_definitions, prepare_call
from blacksmith_tools.utils.browser import NotFound, Token, build_resolver

router = APIRouter()
DEBUG_MODE = is_debug_mode()


def _error_status(error: BaseException) -> int:
    if isinstance(error, SessionExpiredError):
        return 401
    if isinstance(error, UnknownToolError):
        return 404
    if isinstance(error, ConfigurationError):
        return 503
    if isinstance(error, ApiError):
        return 502
    return 500


@router.get("/tools")
async def list_tools():
    """List available tools with their JSON Schema argument definitions."""
    return {"tools": get_tool_definitions()}


@router.post("/tools/{name}")
async def call_tool(name: str, arguments: Optional[Dict[str, Any]] = Body(default=None)):
    try:
        tool, args = prepare_call(name, arguments)
    except UnknownToolError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False))

    logger.info(f"Executing tool: {name}")
    if DEBUG_MODE:
        logger.debug("/tools/%s arguments: %s", name, arguments)

    try:
        async with create_client() as client:
            result = await tool.handler(client, args)
    except BlacksmithError as e:
        logger.warning(f"Tool {name} failed: {e.code} {e.message}")
        return JSONResponse(status_code=_error_status(e), content=format_error_response(e))
    except Exception as e:
        logger.error(f"Tool {name} failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content=format_error_response(e))

    if DEBUG_MODE:
        logger.debug("/tools/%s result: %s", name, result)
    return {"tool": name, "result": result}


@router.get("/session")
async def session_status():
    """Report where the session credential would come from, never its value."""
    outcome = await run_in_threadpool(lambda: build_resolver().resolve())
    if isinstance(outcome, Token):
        return {"status": "token", "source": outcome.source, "cookie_name": outcome.cookie_name}
    status = "not_found" if isinstance(outcome, NotFound) else "unavailable"
    return {
        "status": status,
        "source": "none",
        "reason": outcome.reason,
        "hint": "Log into app.blacksmith.sh in your browser or set BLACKSMITH_SESSION_COOKIE.",
    }

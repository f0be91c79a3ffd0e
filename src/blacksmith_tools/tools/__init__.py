# src/blacksmith_tools/tools/__init__.py
"""
Tool registry.

Every tool is a coroutine taking the API client and a validated pydantic
argument model; the registry also publishes each model as JSON Schema so
callers can discover the argument shapes.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel

from blacksmith_tools.errors import UnknownToolError
from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import (
    CacheEntriesRequest,
    CacheStatsRequest,
    FailedTestsRequest,
    JobLogsRequest,
    JobRequest,
    JobTestsRequest,
    ListRunsRequest,
    NoArguments,
    RunRequest,
    SearchLogsRequest,
)
from blacksmith_tools.tools import jobs, logs, org, results, runs, usage


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    schema: Type[BaseModel]
    handler: Callable[[BlacksmithClient, Any], Awaitable[Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.schema.model_json_schema(),
        }


TOOLS: List[ToolDefinition] = [
    # Organization
    ToolDefinition(
        "list_orgs",
        "List all Blacksmith organizations accessible to your account. Use this first to see available orgs.",
        NoArguments,
        org.list_orgs,
    ),
    ToolDefinition(
        "get_org_status",
        "Get the status of the current organization (personal org, onboarding, runner region).",
        NoArguments,
        org.get_org_status,
    ),
    # Workflow runs
    ToolDefinition(
        "list_runs",
        "List workflow runs with filtering. Filter by status (success/failure/cancelled/skipped/in_progress), "
        "branch, workflow name, actor, or PR number. Example: list_runs(status=\"failure\") to find failed runs.",
        ListRunsRequest,
        runs.list_runs,
    ),
    ToolDefinition(
        "get_run",
        "Get details of a specific workflow run by ID. Includes list of jobs.",
        RunRequest,
        runs.get_run,
    ),
    ToolDefinition(
        "list_jobs",
        "List all jobs for a specific workflow run. Use this to get job IDs for get_job, get_job_logs, and get_job_tests.",
        RunRequest,
        runs.list_jobs,
    ),
    # Jobs
    ToolDefinition(
        "get_job",
        "Get details of a specific job including steps, runner info, and timing.",
        JobRequest,
        jobs.get_job,
    ),
    ToolDefinition(
        "get_job_logs",
        "Get the logs for a specific job. Returns raw log output.",
        JobLogsRequest,
        jobs.get_job_logs,
    ),
    # Tests
    ToolDefinition(
        "get_job_tests",
        "Get test results for a job. Optionally filter by status (pass/fail/skip).",
        JobTestsRequest,
        results.get_job_tests,
    ),
    ToolDefinition(
        "get_failed_tests",
        "Get failed tests for a job grouped by suite, with the file and first error lines of each failure.",
        FailedTestsRequest,
        results.get_failed_tests,
    ),
    # Usage
    ToolDefinition(
        "get_current_usage",
        "Get current core usage snapshot (active cores vs max cores).",
        NoArguments,
        usage.get_current_usage,
    ),
    ToolDefinition(
        "get_invoice_amount",
        "Get the current billing period invoice amount.",
        NoArguments,
        usage.get_invoice_amount,
    ),
    ToolDefinition(
        "get_usage_summary",
        "Get usage summary showing billable minutes vs free tier allowance. Shows remaining free minutes and overage.",
        NoArguments,
        usage.get_usage_summary,
    ),
    ToolDefinition(
        "get_cache_stats",
        "Get Blacksmith cache statistics: total size and entries by repository.",
        CacheStatsRequest,
        usage.get_cache_stats,
    ),
    ToolDefinition(
        "get_cache_entries",
        "Get detailed cache entries for a repository. Shows cache keys, sizes, scopes (branches), and last hit times.",
        CacheEntriesRequest,
        usage.get_cache_entries,
    ),
    # Logs
    ToolDefinition(
        "search_logs",
        "Search logs across all jobs. Filter by query (e.g., \"error\", \"timeout\"), log level "
        "(INFO/WARN/ERROR/DEBUG), and time range.",
        SearchLogsRequest,
        logs.search_logs,
    ),
]

_TOOLS_BY_NAME = {tool.name: tool for tool in TOOLS}


def get_tool(name: str) -> ToolDefinition:
    tool = _TOOLS_BY_NAME.get(name)
    if tool is None:
        raise UnknownToolError(name)
    return tool


def get_tool_definitions() -> List[Dict[str, Any]]:
    return [tool.to_dict() for tool in TOOLS]


def prepare_call(name: str, arguments: Optional[Dict[str, Any]] = None) -> Tuple[ToolDefinition, BaseModel]:
    """Look up a tool and validate its arguments before any credential is resolved."""
    tool = get_tool(name)
    return tool, tool.schema.model_validate(arguments or {})


async def execute_tool(client: BlacksmithClient, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
    tool, args = prepare_call(name, arguments)
    return await tool.handler(client, args)

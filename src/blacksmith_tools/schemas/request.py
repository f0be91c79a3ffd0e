# src/blacksmith_tools/schemas/request.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"
    IN_PROGRESS = "in_progress"


class ResultStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


class LogLevel(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    DEBUG = "DEBUG"


class NoArguments(BaseModel):
    pass


class ListRunsRequest(BaseModel):
    start_date: Optional[str] = Field(default=None, description="Start date (YYYY-MM-DD)")
    end_date: Optional[str] = Field(default=None, description="End date (YYYY-MM-DD)")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of runs to return")
    status: Optional[RunStatus] = Field(
        default=None,
        description="Filter by run status: success, failure, cancelled, skipped, or in_progress",
    )
    branch: Optional[str] = Field(default=None, description="Filter by branch name")
    workflow_name: Optional[str] = Field(default=None, description="Filter by workflow name")
    actor: Optional[str] = Field(default=None, description="Filter by actor (GitHub username who triggered the run)")
    pr_number: Optional[int] = Field(default=None, description="Filter by pull request number")


class RunRequest(BaseModel):
    run_id: str = Field(description="GitHub Actions workflow run ID")


class JobRequest(BaseModel):
    run_id: str = Field(description="GitHub Actions workflow run ID")
    job_id: str = Field(description="GitHub Actions job ID")


class JobLogsRequest(BaseModel):
    job_id: str = Field(description="GitHub Actions job ID")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of log lines (default: 1000)")
    vm_id: Optional[str] = Field(default=None, description="VM ID for the job (optional)")


class JobTestsRequest(BaseModel):
    run_id: str = Field(description="GitHub Actions workflow run ID")
    job_id: str = Field(description="GitHub Actions job ID")
    status: Optional[ResultStatus] = Field(default=None, description="Filter by test status")
    include_tests: bool = Field(
        default=False,
        description="Include individual test details (default: false, returns summary only)",
    )
    limit: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum number of tests to return when include_tests is true (default: 50)",
    )


class FailedTestsRequest(BaseModel):
    run_id: str = Field(description="GitHub Actions workflow run ID")
    job_id: str = Field(description="GitHub Actions job ID")
    suite: Optional[str] = Field(default=None, description='Filter by test suite name (e.g., "FeatureFlags Middleware")')
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of failed tests to return (default: 20)")


class CacheStatsRequest(BaseModel):
    include_history: bool = Field(default=False, description="Include historical cache data (default: false)")


class CacheEntriesRequest(BaseModel):
    repository: str = Field(
        description='Repository name - try short name first (e.g., "api"), or full name (e.g., "acme/api") if needed'
    )
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of entries to return (default: 20)")


class SearchLogsRequest(BaseModel):
    query: Optional[str] = Field(
        default=None,
        description='Search query (e.g., "error", "timeout", "failed"). Leave empty to get all logs.',
    )
    hours: Optional[float] = Field(default=None, gt=0, description="Number of hours to search back (default: 1, max: 24)")
    level: Optional[LogLevel] = Field(default=None, description="Filter by log level")
    limit: Optional[int] = Field(default=None, ge=1, description="Maximum number of logs to return (default: 100)")

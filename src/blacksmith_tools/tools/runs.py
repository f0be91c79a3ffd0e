# src/blacksmith_tools/tools/runs.py
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import ListRunsRequest, RunRequest

DEFAULT_WINDOW_DAYS = 7


def default_date_range(now: Optional[datetime] = None) -> Tuple[str, str]:
    """Last seven days as (start, end) YYYY-MM-DD strings."""
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=DEFAULT_WINDOW_DAYS)
    return start.date().isoformat(), now.date().isoformat()


def _short_sha(run: dict) -> Optional[str]:
    sha = (run.get("head_commit") or {}).get("sha") or run.get("head_sha")
    return sha[:7] if sha else None


def _summarize_run(run: dict) -> dict:
    pull_request = run.get("pull_request") or {}
    return {
        "id": run.get("id"),
        "name": run.get("name"),
        "workflow_name": run.get("workflow_name"),
        "branch": run.get("branch_name") or run.get("head_branch"),
        "sha": _short_sha(run),
        # the API reports conclusions (success/failure/...) in status
        "status": run.get("status") or run.get("conclusion") or "unknown",
        "event": run.get("event"),
        "repository": run.get("repository_name") or (run.get("repository") or {}).get("full_name"),
        "actor": (run.get("actor") or {}).get("login"),
        "pr_number": pull_request.get("number"),
        "duration_seconds": run.get("duration_seconds"),
        "created_at": run.get("created_at"),
        "github_url": run.get("github_url"),
    }


async def list_runs(client: BlacksmithClient, args: ListRunsRequest):
    default_start, default_end = default_date_range()
    start_date = args.start_date or default_start
    end_date = args.end_date or default_end
    status = args.status.value if args.status else None

    runs = await client.list_runs(
        start_date=start_date,
        end_date=end_date,
        statuses=[status] if status else None,
        branches=[args.branch] if args.branch else None,
        workflows=[args.workflow_name] if args.workflow_name else None,
        users=[args.actor] if args.actor else None,
    )

    filters_applied = []
    if status:
        filters_applied.append(f"status={status}")
    if args.branch:
        filters_applied.append(f"branch={args.branch}")
    if args.workflow_name:
        filters_applied.append(f"workflow={args.workflow_name}")
    if args.actor:
        filters_applied.append(f"actor={args.actor}")

    # PR filtering is not supported server-side
    if args.pr_number:
        runs = [run for run in runs if (run.get("pull_request") or {}).get("number") == args.pr_number]
        filters_applied.append(f"pr=#{args.pr_number}")

    total_matching = len(runs)
    if args.limit:
        runs = runs[: args.limit]

    result = {
        "runs": [_summarize_run(run) for run in runs],
        "total_count": len(runs),
        "total_matching": total_matching,
        "date_range": {"start": start_date, "end": end_date},
    }
    if filters_applied:
        result["filters_applied"] = filters_applied
    return result


def _summarize_job(job: dict) -> dict:
    return {
        "id": job.get("id"),
        "name": job.get("name"),
        "status": job.get("status"),
        "conclusion": job.get("conclusion"),
        "runtime_seconds": job.get("runtime_seconds"),
        "labels": job.get("labels"),
    }


async def get_run(client: BlacksmithClient, args: RunRequest):
    run = await client.get_run(args.run_id)
    jobs = run.get("jobs") or []
    return {
        "run_id": run.get("run_id"),
        "workflow_name": run.get("workflow_name"),
        "repository": run.get("repository_name"),
        "attempts": [
            {
                "attempt": attempt.get("attempt"),
                "status": attempt.get("status"),
                "event": attempt.get("event"),
                "created_at": attempt.get("created_at"),
                "github_url": attempt.get("html_url"),
            }
            for attempt in run.get("attempts") or []
        ],
        "jobs": [_summarize_job(job) for job in jobs],
        "job_count": len(jobs),
    }


async def list_jobs(client: BlacksmithClient, args: RunRequest):
    run = await client.get_run(args.run_id)
    jobs = run.get("jobs") or []
    summaries = []
    for job in jobs:
        summary = _summarize_job(job)
        summary["steps"] = [
            {
                "number": step.get("number"),
                "name": step.get("name"),
                "status": step.get("status"),
                "conclusion": step.get("conclusion"),
            }
            for step in job.get("steps") or []
        ]
        summaries.append(summary)
    return {
        "run_id": run.get("run_id"),
        "workflow_name": run.get("workflow_name"),
        "repository": run.get("repository_name"),
        "jobs": summaries,
        "total_count": len(jobs),
    }

# src/blacksmith_tools/tools/logs.py
from collections import Counter
from datetime import datetime, timedelta, timezone

from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import SearchLogsRequest

DEFAULT_HOURS = 1
MAX_HOURS = 24
DEFAULT_LOG_LIMIT = 100
MAX_MESSAGE_LENGTH = 200


def _iso(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


async def search_logs(client: BlacksmithClient, args: SearchLogsRequest):
    hours = min(args.hours or DEFAULT_HOURS, MAX_HOURS)
    limit = args.limit or DEFAULT_LOG_LIMIT

    end = datetime.now(timezone.utc)
    start = end - timedelta(hours=hours)
    start_time, end_time = _iso(start), _iso(end)

    response = await client.search_logs(start_time, end_time, args.query)
    logs = response.get("logs") or []

    if args.level:
        logs = [log for log in logs if (log.get("level") or "").upper() == args.level.value]

    level_counts = Counter((log.get("level") or "").upper() for log in logs)
    limited = logs[:limit]

    errors = level_counts.get("ERROR", 0)
    if errors:
        insight = f"Found {errors} error(s) in the last {hours:g} hour(s)."
    else:
        insight = f"No errors found in the last {hours:g} hour(s)."

    total_found = response.get("total_count")
    return {
        "summary": {
            "total_found": total_found if total_found is not None else len(logs),
            "showing": len(limited),
            "time_range": {"start": start_time, "end": end_time},
            "by_level": dict(level_counts),
        },
        "logs": [
            {
                "timestamp": log.get("timestamp"),
                "level": log.get("level"),
                "message": _truncate(log.get("message") or ""),
                "job_id": log.get("job_id"),
                "step": log.get("step_name"),
            }
            for log in limited
        ],
        "insight": insight,
    }


def _truncate(message: str) -> str:
    if len(message) > MAX_MESSAGE_LENGTH:
        return message[:MAX_MESSAGE_LENGTH] + "..."
    return message

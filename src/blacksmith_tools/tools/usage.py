# src/blacksmith_tools/tools/usage.py
from datetime import datetime, timezone
from typing import Optional

from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import CacheEntriesRequest, CacheStatsRequest, NoArguments

DEFAULT_CACHE_ENTRIES = 20
TOP_REPOSITORIES = 10
MAX_KEY_LENGTH = 60


def format_gb(gb: float) -> str:
    if gb < 0.001:
        return f"{gb * 1024 * 1024:.0f} KB"
    if gb < 1:
        return f"{gb * 1024:.1f} MB"
    return f"{gb:.2f} GB"


def format_mb(mb: float) -> str:
    if mb < 1:
        return f"{mb * 1024:.0f} KB"
    if mb < 1024:
        return f"{mb:.1f} MB"
    return f"{mb / 1024:.2f} GB"


def format_time_ago(timestamp: Optional[str], now: Optional[datetime] = None) -> str:
    if not timestamp:
        return "unknown"
    try:
        moment = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return "unknown"
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    hours = int((now - moment).total_seconds() // 3600)
    if hours < 1:
        return "just now"
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


async def get_current_usage(client: BlacksmithClient, args: NoArguments):
    usage = await client.get_current_usage()
    current = usage.get("current_cores") or 0
    maximum = usage.get("max_cores") or 0
    return {
        "current_cores": current,
        "max_cores": maximum,
        "utilization_percent": round(current / maximum * 100) if maximum > 0 else None,
        "timestamp": usage.get("timestamp"),
    }


async def get_invoice_amount(client: BlacksmithClient, args: NoArguments):
    invoice = await client.get_invoice_amount()
    amount = invoice.get("amount") or 0
    currency = invoice.get("currency") or "USD"
    dollars = f"{amount / 100:.2f}"
    result = {
        "amount": amount,
        "amount_dollars": float(dollars),
        "currency": currency,
        "formatted": f"${dollars} {currency}",
    }
    if invoice.get("period_start") and invoice.get("period_end"):
        result["period"] = {"start": invoice["period_start"], "end": invoice["period_end"]}
    return result


async def get_usage_summary(client: BlacksmithClient, args: NoArguments):
    usage = await client.get_usage_summary()
    used = usage.get("billable_minutes") or 0
    free = usage.get("free_minutes") or 0
    return {
        "billable_minutes": used,
        "free_minutes": free,
        "remaining_free_minutes": max(0, free - used),
        "overage_minutes": max(0, used - free),
        "usage_percent": round(used / free * 100) if free > 0 else None,
        "status": "over_limit" if used >= free else "within_free_tier",
    }


async def get_cache_stats(client: BlacksmithClient, args: CacheStatsRequest):
    repos = await client.get_cache_stats(args.include_history)
    total_gb = sum(repo.get("usage_total_gbs") or 0 for repo in repos)
    total_entries = sum(repo.get("num_entries") or 0 for repo in repos)
    largest = sorted(repos, key=lambda repo: repo.get("usage_total_gbs") or 0, reverse=True)[:TOP_REPOSITORIES]

    if not repos:
        insight = "No cache data found. Cache may not be configured or no entries exist yet."
    else:
        noun = "repository" if len(repos) == 1 else "repositories"
        insight = f"{len(repos)} {noun} using {format_gb(total_gb)} cache storage."

    return {
        "summary": {
            "total_size": format_gb(total_gb),
            "total_size_gb": total_gb,
            "total_entries": total_entries,
            "repository_count": len(repos),
        },
        "repositories": [
            {
                "name": repo.get("name"),
                "size": format_gb(repo.get("usage_total_gbs") or 0),
                "size_gb": repo.get("usage_total_gbs") or 0,
                "entries": repo.get("num_entries") or 0,
                "usage_percent": repo.get("usage_total_percentage"),
            }
            for repo in largest
        ],
        "insight": insight,
    }


def _short_key(key: str) -> str:
    return key if len(key) <= MAX_KEY_LENGTH else key[:MAX_KEY_LENGTH] + "..."


async def get_cache_entries(client: BlacksmithClient, args: CacheEntriesRequest):
    response = await client.get_cache_entries(args.repository, per_page=args.limit or DEFAULT_CACHE_ENTRIES)
    # sizes come back in MB
    entries = response.get("data") or []
    total_mb = sum(entry.get("size") or 0 for entry in entries)

    if not entries:
        insight = "No cache entries found for this repository."
    else:
        insight = (
            f"{len(entries)} cache entries totaling {format_mb(total_mb)}. "
            f"Most recent hit: {format_time_ago(entries[0].get('lastHitTime'))}."
        )

    return {
        "summary": {
            "repository": args.repository,
            "total_entries": len(entries),
            "total_size": format_mb(total_mb),
        },
        "entries": [
            {
                "key": _short_key(entry.get("key") or ""),
                "scope": entry.get("scope"),
                "size": format_mb(entry.get("size") or 0),
                "architecture": entry.get("arch"),
                "last_hit": format_time_ago(entry.get("lastHitTime")),
            }
            for entry in entries
        ],
        "insight": insight,
    }

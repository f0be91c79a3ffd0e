# src/blacksmith_tools/tools/results.py
import re
from typing import Dict, List, Optional

from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import FailedTestsRequest, JobTestsRequest

DEFAULT_TEST_LIMIT = 50
DEFAULT_FAILED_LIMIT = 20
MAX_FAILING_SUITES = 15
UNKNOWN_SUITE = "Unknown Suite"

# "at fn (path/to/file.ts:12:34)" style stack frames
STACK_FRAME = re.compile(r"at (?:Object\.)?[^\s]+\s+\(([^:]+):\d+:\d+\)")


def extract_file_path(logs: Optional[str]) -> Optional[str]:
    if not logs:
        return None
    match = STACK_FRAME.search(logs)
    return match.group(1) if match else None


def truncate_error(logs: Optional[str], max_lines: int = 3) -> Optional[str]:
    """First meaningful error lines joined with ' | ', stack frames dropped."""
    if not logs:
        return None
    lines = [line.strip() for line in logs.split("\n")]
    lines = [line for line in lines if line and not line.startswith("at ")]
    return " | ".join(lines[:max_lines])


async def get_job_tests(client: BlacksmithClient, args: JobTestsRequest):
    status = args.status.value if args.status else None
    response = await client.get_job_tests(args.run_id, args.job_id, status)
    tests = response.get("tests") or []
    limit = args.limit or DEFAULT_TEST_LIMIT

    suite_stats: Dict[str, Dict[str, int]] = {}
    for test in tests:
        suite = test.get("test_suite") or UNKNOWN_SUITE
        stats = suite_stats.setdefault(suite, {"total": 0, "passed": 0, "failed": 0, "skipped": 0})
        stats["total"] += 1
        test_status = test.get("test_status")
        if test_status == "pass":
            stats["passed"] += 1
        elif test_status == "fail":
            stats["failed"] += 1
        elif test_status == "skip":
            stats["skipped"] += 1

    summary = {
        "total": response.get("total_count") if response.get("total_count") is not None else len(tests),
        "passed": sum(1 for test in tests if test.get("test_status") == "pass"),
        "failed": sum(1 for test in tests if test.get("test_status") == "fail"),
        "skipped": sum(1 for test in tests if test.get("test_status") == "skip"),
    }

    failing = sorted(
        ((name, stats) for name, stats in suite_stats.items() if stats["failed"] > 0),
        key=lambda item: item[1]["failed"],
        reverse=True,
    )
    failing_suites = [
        {"name": name, "failed": stats["failed"], "passed": stats["passed"]}
        for name, stats in failing[:MAX_FAILING_SUITES]
    ]

    if not args.include_tests:
        return {
            "summary": summary,
            "failing_suites": failing_suites,
            "total_suites": len(suite_stats),
        }

    return {
        "summary": summary,
        "failing_suites": failing_suites,
        "tests": [
            {"name": test.get("test_name"), "suite": test.get("test_suite"), "status": test.get("test_status")}
            for test in tests[:limit]
        ],
        "showing": f"{min(len(tests), limit)} of {len(tests)}",
    }


async def get_failed_tests(client: BlacksmithClient, args: FailedTestsRequest):
    response = await client.get_job_tests(args.run_id, args.job_id, "fail")
    all_failed = response.get("tests") or []
    tests = all_failed

    if args.suite:
        suite_filter = args.suite.lower()
        tests = [test for test in tests if suite_filter in (test.get("test_suite") or "").lower()]

    limited = tests[: args.limit or DEFAULT_FAILED_LIMIT]

    by_suite: Dict[str, List[dict]] = {}
    for test in limited:
        by_suite.setdefault(test.get("test_suite") or UNKNOWN_SUITE, []).append(test)

    total_failed = response.get("total_count")
    summary = {
        "total_failed": total_failed if total_failed is not None else len(all_failed),
        "showing": len(limited),
        "suites_affected": len(by_suite),
    }
    if args.suite:
        summary["filtered"] = len(tests)

    commit = None
    if limited:
        first = limited[0]
        sha = first.get("sha")
        commit = {
            "sha": sha[:7] if sha else None,
            "branch": first.get("branch"),
            "pr_number": first.get("pr_number"),
        }

    return {
        "summary": summary,
        "by_suite": [
            {
                "suite": suite,
                "failed_count": len(suite_tests),
                "tests": [
                    {
                        "name": test.get("test_name"),
                        "file": extract_file_path(test.get("logs")),
                        "error": truncate_error(test.get("logs")),
                    }
                    for test in suite_tests
                ],
            }
            for suite, suite_tests in by_suite.items()
        ],
        "commit": commit,
    }

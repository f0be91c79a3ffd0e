# src/blacksmith_tools/tools/jobs.py
from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import JobLogsRequest, JobRequest

DEFAULT_LOG_LINES = 1000


async def get_job(client: BlacksmithClient, args: JobRequest):
    job = await client.get_job(args.run_id, args.job_id)
    return {
        "id": job.get("id"),
        "run_id": job.get("run_id"),
        "name": job.get("name"),
        "status": job.get("status"),
        "conclusion": job.get("conclusion"),
        "runner_name": job.get("runner_name"),
        "runner_group": job.get("runner_group_name"),
        "labels": job.get("labels"),
        "started_at": job.get("started_at"),
        "completed_at": job.get("completed_at"),
        "steps": [
            {
                "number": step.get("number"),
                "name": step.get("name"),
                "status": step.get("status"),
                "conclusion": step.get("conclusion"),
                "started_at": step.get("started_at"),
                "completed_at": step.get("completed_at"),
            }
            for step in job.get("steps") or []
        ],
    }


async def get_job_logs(client: BlacksmithClient, args: JobLogsRequest):
    result = await client.get_job_logs(args.job_id, limit=args.limit or DEFAULT_LOG_LINES, vm_id=args.vm_id)
    logs = result["logs"]
    return {
        "job_id": args.job_id,
        "line_count": len(logs.split("\n")) if logs else 0,
        "logs": logs,
    }

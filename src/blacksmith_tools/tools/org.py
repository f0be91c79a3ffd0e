# src/blacksmith_tools/tools/org.py
import asyncio

from blacksmith_tools.models.blacksmith import BlacksmithClient
from blacksmith_tools.schemas.request import NoArguments


async def list_orgs(client: BlacksmithClient, args: NoArguments):
    orgs = await client.list_orgs()
    return {
        "organizations": [
            {"login": org.get("login"), "name": org.get("name"), "id": org.get("id")}
            for org in orgs
        ],
        "count": len(orgs),
        "hint": "Set BLACKSMITH_ORG environment variable to one of these org logins to use other tools.",
    }


async def get_org_status(client: BlacksmithClient, args: NoArguments):
    is_personal, has_onboarded, region = await asyncio.gather(
        client.is_personal_org(),
        client.has_onboarded(),
        client.get_runner_region(),
    )
    return {
        "is_personal_org": is_personal,
        "has_onboarded": has_onboarded,
        "runner_region": region,
    }

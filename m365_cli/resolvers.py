"""Name to id lookups shared by commands.

Each lookup has its own matching policy: most reject more than one match,
the channel lookup takes the first one.
"""

from __future__ import annotations

from typing import Any

from .cli_shared import ResolutionError
from .graph_client import get_all_items, odata_encode, odata_literal


async def get_group_by_display_name(session: Any, display_name: str) -> dict[str, Any]:
    flt = odata_encode(f"displayName eq '{odata_literal(display_name)}'")
    groups = await get_all_items(session, session.graph(f"v1.0/groups?$filter={flt}"))
    if not groups:
        raise ResolutionError(f"The specified group '{display_name}' does not exist.")
    if len(groups) > 1:
        ids = ",".join(str(g.get("id") or "") for g in groups)
        raise ResolutionError(f"Multiple groups with name '{display_name}' found: {ids}.")
    return groups[0]


async def get_group_id_by_display_name(session: Any, display_name: str) -> str:
    group = await get_group_by_display_name(session, display_name)
    return str(group.get("id") or "")


async def get_team_id_by_display_name(session: Any, display_name: str) -> str:
    group = await get_group_by_display_name(session, display_name)
    provisioning = group.get("resourceProvisioningOptions") or []
    if "Team" not in provisioning:
        raise ResolutionError("The specified team does not exist in the Microsoft Teams")
    return str(group.get("id") or "")


async def get_private_channel_id_by_name(session: Any, team_id: str, channel_name: str) -> str:
    """First channel with the display name wins; it must be private."""
    flt = odata_encode(f"displayName eq '{odata_literal(channel_name)}'")
    url = session.graph(f"v1.0/teams/{team_id}/channels?$filter={flt}")
    resp = await session.get(url)
    channels = (resp or {}).get("value") or []
    if not channels:
        raise ResolutionError("The specified channel does not exist in the Microsoft Teams team")
    channel = channels[0]
    if channel.get("membershipType") != "private":
        raise ResolutionError("The specified channel is not a private channel")
    return str(channel.get("id") or "")


async def get_channel_member_id(
    session: Any,
    team_id: str,
    channel_id: str,
    *,
    user_id: str | None,
    user_name: str | None,
) -> str:
    url = session.graph(f"v1.0/teams/{team_id}/channels/{channel_id}/members")
    resp = await session.get(url)
    members = (resp or {}).get("value") or []
    matches = [
        m
        for m in members
        if (user_id and str(m.get("userId") or "").lower() == user_id.lower())
        or (user_name and str(m.get("email") or "").lower() == user_name.lower())
    ]
    if not matches:
        raise ResolutionError("The specified member does not exist in the Microsoft Teams channel")
    if len(matches) > 1:
        ids = ",".join(str(m.get("userId") or "") for m in matches)
        raise ResolutionError(f"Multiple Microsoft Teams channel members with name {user_name} found: {ids}")
    return str(matches[0].get("id") or "")


async def get_user_ids_by_upns(session: Any, user_names: list[str], *, purpose: str) -> list[str]:
    """Resolve every UPN, then report all unknown ones together."""
    ids: list[str] = []
    invalid: list[str] = []
    for upn in user_names:
        flt = odata_encode(f"userPrincipalName eq '{odata_literal(upn)}'")
        resp = await session.get(session.graph(f"v1.0/users?$filter={flt}&$select=id,userPrincipalName"))
        users = (resp or {}).get("value") or []
        if users:
            ids.append(str(users[0].get("id") or ""))
        else:
            invalid.append(upn)
    if invalid:
        raise ResolutionError(
            f"Cannot proceed with {purpose}. The following users provided are invalid : {','.join(invalid)}"
        )
    return ids


async def get_plan_id_by_title(session: Any, title: str, owner_group_id: str) -> str:
    plans = await get_all_items(session, session.graph(f"v1.0/groups/{owner_group_id}/planner/plans"))
    matches = [p for p in plans if p.get("title") == title]
    if not matches:
        raise ResolutionError("The specified plan does not exist")
    if len(matches) > 1:
        ids = ", ".join(str(p.get("id") or "") for p in matches)
        raise ResolutionError(f"Multiple plans with title '{title}' found: {ids}")
    return str(matches[0].get("id") or "")

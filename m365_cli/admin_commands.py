from __future__ import annotations

import argparse
from typing import Any
from urllib.parse import quote

from . import auth_inputs, resolvers
from .cli_shared import GlobalOpts, OpError, _jwt_payload, _parse_csv
from .command_base import (
    Command,
    CommandOutput,
    OptionAlias,
    OptionDescriptor,
    OptionSet,
    Validator,
    run_command,
)
from .graph_client import get_all_items
from .validation import is_valid_boolean, is_valid_guid, is_valid_teams_channel_id


def _ensure_delegated_token(session: Any) -> None:
    claims = _jwt_payload(session.tokens.graph)
    if auth_inputs.is_app_only_access_token(claims):
        raise OpError("This command does not support application permissions.")


class TeamsTeamArchiveCommand(Command):
    name = "teams team archive"
    description = "Archives specified Microsoft Teams team"
    options = (
        OptionDescriptor("id", "--id", short="-i"),
        OptionDescriptor("name", "--name", short="-n"),
        OptionDescriptor("team_id", "--team-id"),
        OptionDescriptor(
            "should_set_spo_site_read_only_for_members",
            "--should-set-spo-site-read-only-for-members",
            boolean=True,
        ),
    )
    option_sets = (OptionSet(("id", "name")),)
    option_aliases = (OptionAlias("team_id", "id"),)

    def validators(self) -> list[Validator]:
        return [self._validate_id]

    async def _validate_id(self, args: argparse.Namespace) -> bool | str:
        if args.id and not is_valid_guid(args.id):
            return f"{args.id} is not a valid GUID"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        team_id = args.id or await resolvers.get_team_id_by_display_name(session, args.name)
        out.verbose(f"Archiving team {team_id}...")
        await session.post(
            session.graph(f"v1.0/teams/{quote(team_id, safe='')}/archive"),
            json_body={
                "shouldSetSpoSiteReadOnlyForMembers": bool(args.should_set_spo_site_read_only_for_members),
            },
        )


class TeamsChannelMemberRemoveCommand(Command):
    name = "teams channel member remove"
    description = "Remove the specified member from the specified Microsoft Teams private or shared team channel"
    aliases = ("teams conversationmember remove",)
    destructive = True
    options = (
        OptionDescriptor("team_id", "--team-id"),
        OptionDescriptor("team_name", "--team-name"),
        OptionDescriptor("channel_id", "--channel-id"),
        OptionDescriptor("channel_name", "--channel-name"),
        OptionDescriptor("user_name", "--user-name"),
        OptionDescriptor("user_id", "--user-id"),
        OptionDescriptor("id", "--id"),
        OptionDescriptor("confirm", "--confirm", boolean=True),
    )
    option_sets = (
        OptionSet(("team_id", "team_name")),
        OptionSet(("channel_id", "channel_name")),
        OptionSet(("user_id", "user_name", "id")),
    )

    def validators(self) -> list[Validator]:
        return [self._validate_ids]

    async def _validate_ids(self, args: argparse.Namespace) -> bool | str:
        if args.team_id and not is_valid_guid(args.team_id):
            return f"{args.team_id} is not a valid GUID"
        if args.channel_id and not is_valid_teams_channel_id(args.channel_id):
            return f"{args.channel_id} is not a valid Teams Channel ID"
        if args.user_id and not is_valid_guid(args.user_id):
            return f"{args.user_id} is not a valid GUID"
        return True

    def confirm_message(self, args: argparse.Namespace) -> str:
        user = args.user_name or args.user_id or args.id
        team = args.team_name or args.team_id
        channel = args.channel_name or args.channel_id
        return f"Are you sure you want to remove the member {user} from the channel {channel} in team {team}?"

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        team_id = args.team_id or await resolvers.get_team_id_by_display_name(session, args.team_name)
        channel_id = args.channel_id or await resolvers.get_private_channel_id_by_name(
            session, team_id, args.channel_name
        )
        member_id = args.id or await resolvers.get_channel_member_id(
            session,
            team_id,
            channel_id,
            user_id=args.user_id,
            user_name=args.user_name,
        )
        await session.delete(session.graph(f"v1.0/teams/{team_id}/channels/{channel_id}/members/{member_id}"))


class TeamsMessagingSettingsSetCommand(Command):
    name = "teams messagingsettings set"
    description = "Updates messaging settings of a Microsoft Teams team"
    settings = (
        ("allow_user_edit_messages", "allowUserEditMessages"),
        ("allow_user_delete_messages", "allowUserDeleteMessages"),
        ("allow_owner_delete_messages", "allowOwnerDeleteMessages"),
        ("allow_team_mentions", "allowTeamMentions"),
        ("allow_channel_mentions", "allowChannelMentions"),
    )
    options = (
        OptionDescriptor("team_id", "--team-id", short="-i", required=True),
        *(OptionDescriptor(attr, "--" + attr.replace("_", "-")) for attr, _api in settings),
    )

    def validators(self) -> list[Validator]:
        return [self._validate_team_id, self._validate_booleans]

    async def _validate_team_id(self, args: argparse.Namespace) -> bool | str:
        if not is_valid_guid(args.team_id):
            return f"{args.team_id} is not a valid GUID"
        return True

    async def _validate_booleans(self, args: argparse.Namespace) -> bool | str:
        for attr, _api in self.settings:
            value = getattr(args, attr, None)
            if value is not None and not is_valid_boolean(value):
                return f"Value {value} for option {self.flag_for(attr)} is not a valid boolean"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        settings: dict[str, bool] = {}
        for attr, api in self.settings:
            value = getattr(args, attr, None)
            if value is not None:
                settings[api] = str(value).strip().lower() == "true"
        await session.patch(
            session.graph(f"v1.0/teams/{quote(args.team_id, safe='')}"),
            json_body={"messagingSettings": settings},
        )


class AadO365GroupConversationPostListCommand(Command):
    name = "aad o365group conversation post list"
    description = "Lists conversation posts of a Microsoft 365 group"
    default_properties = ("receivedDateTime", "id")
    options = (
        OptionDescriptor("group_id", "--group-id", short="-i"),
        OptionDescriptor("group_display_name", "--group-display-name", short="-d"),
        OptionDescriptor("thread_id", "--thread-id", short="-t", required=True),
    )
    option_sets = (OptionSet(("group_id", "group_display_name")),)

    def validators(self) -> list[Validator]:
        return [self._validate_group_id]

    async def _validate_group_id(self, args: argparse.Namespace) -> bool | str:
        if args.group_id and not is_valid_guid(args.group_id):
            return f"{args.group_id} is not a valid GUID"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        if args.group_id:
            group_id = quote(args.group_id, safe="")
        else:
            group_id = await resolvers.get_group_id_by_display_name(session, args.group_display_name)
        posts = await get_all_items(
            session,
            session.graph(f"v1.0/groups/{group_id}/threads/{quote(args.thread_id, safe='')}/posts"),
        )
        out.log(posts, properties=self.default_properties)


class PlannerPlanAddCommand(Command):
    name = "planner plan add"
    description = "Adds a new Microsoft Planner plan"
    default_properties = ("id", "title", "createdDateTime", "owner")
    options = (
        OptionDescriptor("title", "--title", short="-t", required=True),
        OptionDescriptor("owner_group_id", "--owner-group-id"),
        OptionDescriptor("owner_group_name", "--owner-group-name"),
        OptionDescriptor("share_with_user_ids", "--share-with-user-ids"),
        OptionDescriptor("share_with_user_names", "--share-with-user-names"),
    )
    option_sets = (
        OptionSet(("owner_group_id", "owner_group_name")),
        OptionSet(("share_with_user_ids", "share_with_user_names"), required=False),
    )

    def validators(self) -> list[Validator]:
        return [self._validate_ids]

    async def _validate_ids(self, args: argparse.Namespace) -> bool | str:
        if args.owner_group_id and not is_valid_guid(args.owner_group_id):
            return f"{args.owner_group_id} is not a valid GUID"
        if args.share_with_user_ids:
            invalid = [u for u in _parse_csv(args.share_with_user_ids) if not is_valid_guid(u)]
            if invalid:
                return f"The following user IDs are invalid: {', '.join(invalid)}"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        _ensure_delegated_token(session)
        group_id = args.owner_group_id or await resolvers.get_group_id_by_display_name(
            session, args.owner_group_name
        )
        user_ids = _parse_csv(args.share_with_user_ids)
        if args.share_with_user_names:
            user_ids = await resolvers.get_user_ids_by_upns(
                session,
                _parse_csv(args.share_with_user_names),
                purpose="planner plan creation",
            )

        plan = await session.post(
            session.graph("v1.0/planner/plans"),
            json_body={"owner": group_id, "title": args.title},
        )
        if not user_ids:
            out.log(plan, properties=self.default_properties)
            return

        plan_id = str((plan or {}).get("id") or "")
        if not plan_id:
            raise OpError("missing plan id in planner plan creation response")
        details_url = session.graph(f"v1.0/planner/plans/{plan_id}/details")
        details = await session.get(details_url)
        etag = str((details or {}).get("@odata.etag") or "")
        updated = await session.patch(
            details_url,
            headers={"If-Match": etag, "Prefer": "return=representation"},
            json_body={"sharedWith": {uid: True for uid in user_ids}},
        )
        out.log({**plan, **(updated or {})}, properties=self.default_properties)


class PlannerBucketListCommand(Command):
    name = "planner bucket list"
    description = "Lists the Microsoft Planner buckets in a plan"
    default_properties = ("id", "name", "planId", "orderHint")
    options = (
        OptionDescriptor("plan_id", "--plan-id"),
        OptionDescriptor("plan_title", "--plan-title"),
        OptionDescriptor("plan_name", "--plan-name"),
        OptionDescriptor("owner_group_id", "--owner-group-id"),
        OptionDescriptor("owner_group_name", "--owner-group-name"),
    )
    option_sets = (
        OptionSet(("plan_id", "plan_title")),
        OptionSet(("owner_group_id", "owner_group_name"), run_when=lambda args: args.plan_title is not None),
    )
    option_aliases = (OptionAlias("plan_name", "plan_title"),)

    def validators(self) -> list[Validator]:
        return [self._validate_owner_group_id]

    async def _validate_owner_group_id(self, args: argparse.Namespace) -> bool | str:
        if args.owner_group_id and not is_valid_guid(args.owner_group_id):
            return f"{args.owner_group_id} is not a valid GUID"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        _ensure_delegated_token(session)
        plan_id = args.plan_id
        if not plan_id:
            group_id = args.owner_group_id or await resolvers.get_group_id_by_display_name(
                session, args.owner_group_name
            )
            plan_id = await resolvers.get_plan_id_by_title(session, args.plan_title, group_id)
        buckets = await get_all_items(session, session.graph(f"v1.0/planner/plans/{plan_id}/buckets"))
        out.log(buckets, properties=self.default_properties)


TEAM_ARCHIVE = TeamsTeamArchiveCommand()
CHANNEL_MEMBER_REMOVE = TeamsChannelMemberRemoveCommand()
MESSAGINGSETTINGS_SET = TeamsMessagingSettingsSetCommand()
O365GROUP_CONVERSATION_POST_LIST = AadO365GroupConversationPostListCommand()
PLAN_ADD = PlannerPlanAddCommand()
BUCKET_LIST = PlannerBucketListCommand()


def cmd_teams_team_archive(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(TEAM_ARCHIVE, args, g)


def cmd_teams_channel_member_remove(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(CHANNEL_MEMBER_REMOVE, args, g)


def cmd_teams_conversationmember_remove(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(CHANNEL_MEMBER_REMOVE, args, g, invoked_as=CHANNEL_MEMBER_REMOVE.aliases[0])


def cmd_teams_messagingsettings_set(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(MESSAGINGSETTINGS_SET, args, g)


def cmd_aad_o365group_conversation_post_list(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(O365GROUP_CONVERSATION_POST_LIST, args, g)


def cmd_planner_plan_add(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(PLAN_ADD, args, g)


def cmd_planner_bucket_list(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(BUCKET_LIST, args, g)

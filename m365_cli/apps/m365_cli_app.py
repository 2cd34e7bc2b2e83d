from __future__ import annotations

import argparse
import contextlib
import io
import sys
from typing import Any

import click
import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..admin_commands import (
    cmd_aad_o365group_conversation_post_list,
    cmd_planner_bucket_list,
    cmd_planner_plan_add,
    cmd_teams_channel_member_remove,
    cmd_teams_conversationmember_remove,
    cmd_teams_messagingsettings_set,
    cmd_teams_team_archive,
)
from ..cli_shared import M365_ACCESS_TOKEN
from ..cli_shared import M365_OUTPUT
from ..cli_shared import GlobalOpts
from ..cli_shared import OpError
from ..cli_shared import UsageError
from ..cli_shared import _eprint
from ..cli_shared import _resolve_output_mode
from ..spo_commands import (
    cmd_spo_eventreceiver_get,
    cmd_spo_field_add,
    cmd_spo_list_contenttype_remove,
    cmd_spo_listitem_attachment_list,
    cmd_spo_listitem_set,
    cmd_spo_page_header_set,
    cmd_spo_tenant_recyclebinitem_remove,
)


def _bootstrap_env() -> None:
    # Use python-dotenv package defaults: discover and load .env without
    # overriding already-exported process environment values.
    load_dotenv()


_ERROR_CONSOLE = Console(stderr=True)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}", highlight=False, soft_wrap=True)


def _root_help_text(*, root_app: typer.Typer, prog_name: str) -> str:
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        try:
            root_app(args=["--help"], prog_name=prog_name, standalone_mode=False)
        except (typer.Exit, click.ClickException):
            pass
    return str(buf.getvalue() or "").strip()


def _render_usage_error_with_help(
    *,
    message: str,
    ctx: click.Context | None = None,
    fallback_help: str = "",
) -> None:
    _rich_error(message)
    help_text = ""
    if isinstance(ctx, click.Context):
        help_text = str(ctx.get_help() or "").strip()
    if not help_text:
        help_text = str(fallback_help or "").strip()
    if help_text:
        _eprint("")
        _eprint(help_text)


def _namespace(**kwargs: Any) -> argparse.Namespace:
    return argparse.Namespace(**kwargs)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"m365 {__version__}")
        raise typer.Exit(code=0)


def _apply_global_env(args: argparse.Namespace) -> GlobalOpts:
    return GlobalOpts(
        debug=bool(args.debug),
        verbose=bool(args.verbose),
        output=_resolve_output_mode(args.output),
        pretty=not bool(args.plain_json),
        quiet=bool(args.quiet),
        access_token=(args.access_token or "").strip(),
    )


app = typer.Typer(
    name="m365",
    help="Manage Microsoft 365 from the command line.",
    no_args_is_help=True,
    add_completion=False,
)

teams_app = typer.Typer(help="Microsoft Teams", no_args_is_help=True)
team_app = typer.Typer(help="Teams teams", no_args_is_help=True)
channel_app = typer.Typer(help="Teams channels", no_args_is_help=True)
channel_member_app = typer.Typer(help="Members of private and shared channels", no_args_is_help=True)
conversationmember_app = typer.Typer(
    help="Channel members (deprecated, use 'teams channel member')",
    no_args_is_help=True,
)
messagingsettings_app = typer.Typer(help="Team messaging settings", no_args_is_help=True)

aad_app = typer.Typer(help="Azure Active Directory", no_args_is_help=True)
o365group_app = typer.Typer(help="Microsoft 365 groups", no_args_is_help=True)
conversation_app = typer.Typer(help="Group conversations", no_args_is_help=True)
conversation_post_app = typer.Typer(help="Posts in a group conversation thread", no_args_is_help=True)

planner_app = typer.Typer(help="Microsoft Planner", no_args_is_help=True)
plan_app = typer.Typer(help="Planner plans", no_args_is_help=True)
bucket_app = typer.Typer(help="Planner buckets", no_args_is_help=True)

spo_app = typer.Typer(help="SharePoint Online", no_args_is_help=True)
eventreceiver_app = typer.Typer(help="Event receivers on webs, sites and lists", no_args_is_help=True)
listitem_app = typer.Typer(help="List items", no_args_is_help=True)
listitem_attachment_app = typer.Typer(help="List item attachments", no_args_is_help=True)
list_app = typer.Typer(help="Lists", no_args_is_help=True)
list_contenttype_app = typer.Typer(help="Content types bound to a list", no_args_is_help=True)
field_app = typer.Typer(help="Site and list columns", no_args_is_help=True)
page_app = typer.Typer(help="Modern pages", no_args_is_help=True)
page_header_app = typer.Typer(help="Modern page headers", no_args_is_help=True)
tenant_app = typer.Typer(help="Tenant administration", no_args_is_help=True)
recyclebinitem_app = typer.Typer(help="Deleted site collections in the tenant recycle bin", no_args_is_help=True)

app.add_typer(teams_app, name="teams")
app.add_typer(aad_app, name="aad")
app.add_typer(planner_app, name="planner")
app.add_typer(spo_app, name="spo")

teams_app.add_typer(team_app, name="team")
teams_app.add_typer(channel_app, name="channel")
channel_app.add_typer(channel_member_app, name="member")
teams_app.add_typer(conversationmember_app, name="conversationmember")
teams_app.add_typer(messagingsettings_app, name="messagingsettings")

aad_app.add_typer(o365group_app, name="o365group")
o365group_app.add_typer(conversation_app, name="conversation")
conversation_app.add_typer(conversation_post_app, name="post")

planner_app.add_typer(plan_app, name="plan")
planner_app.add_typer(bucket_app, name="bucket")

spo_app.add_typer(eventreceiver_app, name="eventreceiver")
spo_app.add_typer(listitem_app, name="listitem")
listitem_app.add_typer(listitem_attachment_app, name="attachment")
spo_app.add_typer(list_app, name="list")
list_app.add_typer(list_contenttype_app, name="contenttype")
spo_app.add_typer(field_app, name="field")
spo_app.add_typer(page_app, name="page")
page_app.add_typer(page_header_app, name="header")
spo_app.add_typer(tenant_app, name="tenant")
tenant_app.add_typer(recyclebinitem_app, name="recyclebinitem")


@app.callback()
def app_callback(
    ctx: typer.Context,
    debug: bool = typer.Option(False, "--debug", help="Log requests and telemetry to stderr"),
    verbose: bool = typer.Option(False, "--verbose", help="Log progress messages to stderr"),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help=f"Output mode: json or text (default: env {M365_OUTPUT} or json)",
    ),
    plain_json: bool = typer.Option(False, "--plain-json", help="Emit compact JSON output"),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress warnings on stderr"),
    access_token: str | None = typer.Option(
        None,
        "--access-token",
        help=f"Bearer token for Microsoft Graph and SharePoint (default: env {M365_ACCESS_TOKEN})",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version
    ns = _namespace(
        debug=debug,
        verbose=verbose,
        output=output,
        plain_json=plain_json,
        quiet=quiet,
        access_token=access_token,
    )
    try:
        g = _apply_global_env(ns)
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    ctx.obj = {"g": g}


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    root = ctx.find_root()
    for obj in (ctx.obj, root.obj):
        if isinstance(obj, dict) and isinstance(obj.get("g"), GlobalOpts):
            return obj["g"]
    try:
        return _apply_global_env(
            _namespace(
                debug=False,
                verbose=False,
                output=None,
                plain_json=False,
                quiet=False,
                access_token=None,
            )
        )
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)


def _invoke(ctx: typer.Context, func: Any, **kwargs: Any) -> None:
    g = _ctx_global(ctx)
    args = _namespace(**kwargs)
    try:
        code = int(func(args, g))
    except UsageError as e:
        _render_usage_error_with_help(message=str(e), ctx=ctx)
        raise typer.Exit(code=2)
    except OpError as e:
        _rich_error(str(e))
        raise typer.Exit(code=1)

    if code:
        raise typer.Exit(code=code)


def _invoke_from_locals(
    ctx: typer.Context,
    func: Any,
    local_vars: dict[str, Any],
    *,
    drop: tuple[str, ...] = ("ctx",),
) -> None:
    _invoke(ctx, func, **{k: v for k, v in local_vars.items() if k not in drop})


@team_app.command("archive", help="Archives specified Microsoft Teams team.")
def teams_team_archive(
    ctx: typer.Context,
    id: str | None = typer.Option(None, "--id", "-i", help="ID of the team to archive"),
    name: str | None = typer.Option(None, "--name", "-n", help="Display name of the team to archive"),
    team_id: str | None = typer.Option(None, "--team-id", help="(deprecated) use --id"),
    should_set_spo_site_read_only_for_members: bool = typer.Option(
        False,
        "--should-set-spo-site-read-only-for-members",
        help="Make the team's SharePoint site read-only for members",
    ),
) -> None:
    _invoke_from_locals(ctx, cmd_teams_team_archive, locals())


@channel_member_app.command(
    "remove",
    help="Remove a member from a Microsoft Teams private or shared channel.",
)
def teams_channel_member_remove(
    ctx: typer.Context,
    team_id: str | None = typer.Option(None, "--team-id", help="ID of the team"),
    team_name: str | None = typer.Option(None, "--team-name", help="Display name of the team"),
    channel_id: str | None = typer.Option(None, "--channel-id", help="ID of the channel"),
    channel_name: str | None = typer.Option(None, "--channel-name", help="Display name of the channel"),
    user_name: str | None = typer.Option(None, "--user-name", help="UPN of the member"),
    user_id: str | None = typer.Option(None, "--user-id", help="Azure AD object ID of the member"),
    id: str | None = typer.Option(None, "--id", help="Channel membership ID"),
    confirm: bool = typer.Option(False, "--confirm", help="Don't prompt for confirmation"),
) -> None:
    _invoke_from_locals(ctx, cmd_teams_channel_member_remove, locals())


@conversationmember_app.command("remove", help="(deprecated) use 'teams channel member remove'.")
def teams_conversationmember_remove(
    ctx: typer.Context,
    team_id: str | None = typer.Option(None, "--team-id", help="ID of the team"),
    team_name: str | None = typer.Option(None, "--team-name", help="Display name of the team"),
    channel_id: str | None = typer.Option(None, "--channel-id", help="ID of the channel"),
    channel_name: str | None = typer.Option(None, "--channel-name", help="Display name of the channel"),
    user_name: str | None = typer.Option(None, "--user-name", help="UPN of the member"),
    user_id: str | None = typer.Option(None, "--user-id", help="Azure AD object ID of the member"),
    id: str | None = typer.Option(None, "--id", help="Channel membership ID"),
    confirm: bool = typer.Option(False, "--confirm", help="Don't prompt for confirmation"),
) -> None:
    _invoke_from_locals(ctx, cmd_teams_conversationmember_remove, locals())


@messagingsettings_app.command("set", help="Updates messaging settings of a Microsoft Teams team.")
def teams_messagingsettings_set(
    ctx: typer.Context,
    team_id: str | None = typer.Option(None, "--team-id", "-i", help="ID of the team"),
    allow_user_edit_messages: str | None = typer.Option(None, "--allow-user-edit-messages", help="true or false"),
    allow_user_delete_messages: str | None = typer.Option(None, "--allow-user-delete-messages", help="true or false"),
    allow_owner_delete_messages: str | None = typer.Option(None, "--allow-owner-delete-messages", help="true or false"),
    allow_team_mentions: str | None = typer.Option(None, "--allow-team-mentions", help="true or false"),
    allow_channel_mentions: str | None = typer.Option(None, "--allow-channel-mentions", help="true or false"),
) -> None:
    _invoke_from_locals(ctx, cmd_teams_messagingsettings_set, locals())


@conversation_post_app.command("list", help="Lists conversation posts of a Microsoft 365 group.")
def aad_o365group_conversation_post_list(
    ctx: typer.Context,
    group_id: str | None = typer.Option(None, "--group-id", "-i", help="ID of the group"),
    group_display_name: str | None = typer.Option(
        None, "--group-display-name", "-d", help="Display name of the group"
    ),
    thread_id: str | None = typer.Option(None, "--thread-id", "-t", help="ID of the conversation thread"),
) -> None:
    _invoke_from_locals(ctx, cmd_aad_o365group_conversation_post_list, locals())


@plan_app.command("add", help="Adds a new Microsoft Planner plan.")
def planner_plan_add(
    ctx: typer.Context,
    title: str | None = typer.Option(None, "--title", "-t", help="Title of the plan"),
    owner_group_id: str | None = typer.Option(None, "--owner-group-id", help="ID of the owning group"),
    owner_group_name: str | None = typer.Option(None, "--owner-group-name", help="Name of the owning group"),
    share_with_user_ids: str | None = typer.Option(
        None, "--share-with-user-ids", help="Comma-separated user IDs to share the plan with"
    ),
    share_with_user_names: str | None = typer.Option(
        None, "--share-with-user-names", help="Comma-separated UPNs to share the plan with"
    ),
) -> None:
    _invoke_from_locals(ctx, cmd_planner_plan_add, locals())


@bucket_app.command("list", help="Lists the Microsoft Planner buckets in a plan.")
def planner_bucket_list(
    ctx: typer.Context,
    plan_id: str | None = typer.Option(None, "--plan-id", help="ID of the plan"),
    plan_title: str | None = typer.Option(None, "--plan-title", help="Title of the plan"),
    plan_name: str | None = typer.Option(None, "--plan-name", help="(deprecated) use --plan-title"),
    owner_group_id: str | None = typer.Option(None, "--owner-group-id", help="ID of the owning group"),
    owner_group_name: str | None = typer.Option(None, "--owner-group-name", help="Name of the owning group"),
) -> None:
    _invoke_from_locals(ctx, cmd_planner_bucket_list, locals())


@eventreceiver_app.command("get", help="Gets an event receiver by name or ID.")
def spo_eventreceiver_get(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    list_title: str | None = typer.Option(None, "--list-title", help="Title of the list"),
    list_id: str | None = typer.Option(None, "--list-id", help="ID of the list"),
    list_url: str | None = typer.Option(None, "--list-url", help="Server- or site-relative URL of the list"),
    name: str | None = typer.Option(None, "--name", "-n", help="Name of the event receiver"),
    id: str | None = typer.Option(None, "--id", "-i", help="ID of the event receiver"),
    scope: str | None = typer.Option(None, "--scope", "-s", help="web or site (default: web)"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_eventreceiver_get, locals())


@listitem_attachment_app.command("list", help="Gets the attachments associated to a list item.")
def spo_listitem_attachment_list(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    item_id: str | None = typer.Option(None, "--item-id", help="ID of the list item"),
    list_id: str | None = typer.Option(None, "--list-id", help="ID of the list"),
    list_title: str | None = typer.Option(None, "--list-title", help="Title of the list"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_listitem_attachment_list, locals())


@list_contenttype_app.command("remove", help="Removes a content type from a list.")
def spo_list_contenttype_remove(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    list_id: str | None = typer.Option(None, "--list-id", "-l", help="ID of the list"),
    list_title: str | None = typer.Option(None, "--list-title", "-t", help="Title of the list"),
    content_type_id: str | None = typer.Option(None, "--content-type-id", "-c", help="ID of the content type"),
    confirm: bool = typer.Option(False, "--confirm", help="Don't prompt for confirmation"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_list_contenttype_remove, locals())


@field_app.command("add", help="Adds a list or site column from a CAML field definition.")
def spo_field_add(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    list_title: str | None = typer.Option(None, "--list-title", "-l", help="Title of the list (omit for a site column)"),
    xml: str | None = typer.Option(None, "--xml", "-x", help="CAML field definition"),
    options: str | None = typer.Option(None, "--options", help="Comma-separated AddFieldOptions values"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_field_add, locals())


@listitem_app.command(
    "set",
    help="Updates a list item. Field values are passed as --<InternalName> <value>.",
    context_settings={"allow_extra_args": True, "ignore_unknown_options": True},
)
def spo_listitem_set(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    id: str | None = typer.Option(None, "--id", "-i", help="ID of the list item"),
    list_id: str | None = typer.Option(None, "--list-id", "-l", help="ID of the list"),
    list_title: str | None = typer.Option(None, "--list-title", "-t", help="Title of the list"),
    content_type: str | None = typer.Option(None, "--content-type", "-c", help="Content type name or ID"),
    system_update: bool = typer.Option(
        False, "--system-update", "-s", help="Update without changing Modified or Modified By"
    ),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_listitem_set, {**locals(), "field_args": list(ctx.args)})


@page_header_app.command("set", help="Sets the header of a modern page.")
def spo_page_header_set(
    ctx: typer.Context,
    web_url: str | None = typer.Option(None, "--web-url", "-u", help="URL of the site"),
    page_name: str | None = typer.Option(None, "--page-name", "-n", help="Name of the page (.aspx is added if missing)"),
    type: str | None = typer.Option(None, "--type", help="None, Default or Custom (default: Default)"),
    image_url: str | None = typer.Option(None, "--image-url", help="Server-relative URL of the header image"),
    alt_text: str | None = typer.Option(None, "--alt-text", help="Alternative text of the header image"),
    translate_x: str | None = typer.Option(None, "--translate-x", help="X focal point of the header image"),
    translate_y: str | None = typer.Option(None, "--translate-y", help="Y focal point of the header image"),
    layout: str | None = typer.Option(
        None, "--layout", help="FullWidthImage, NoImage, ColorBlock or CutInShape (default: FullWidthImage)"
    ),
    text_alignment: str | None = typer.Option(None, "--text-alignment", help="Left or Center (default: Left)"),
    show_topic_header: bool = typer.Option(False, "--show-topic-header", help="Show the topic header"),
    show_publish_date: bool = typer.Option(False, "--show-publish-date", help="Show the publish date"),
    topic_header: str | None = typer.Option(None, "--topic-header", help="Topic header text"),
    authors: str | None = typer.Option(None, "--authors", help="Comma-separated page authors"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_page_header_set, locals())


@recyclebinitem_app.command("remove", help="Removes a deleted site collection from the tenant recycle bin.")
def spo_tenant_recyclebinitem_remove(
    ctx: typer.Context,
    site_url: str | None = typer.Option(None, "--site-url", "-u", help="URL of the deleted site collection"),
    wait: bool = typer.Option(False, "--wait", help="Wait for the removal to complete"),
    confirm: bool = typer.Option(False, "--confirm", help="Don't prompt for confirmation"),
) -> None:
    _invoke_from_locals(ctx, cmd_spo_tenant_recyclebinitem_remove, locals())


def _run_cli(*, root_app: typer.Typer, prog_name: str, argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    try:
        result = root_app(args=argv, prog_name=prog_name, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.ClickException as e:
        if isinstance(e, click.UsageError):
            _render_usage_error_with_help(message=e.format_message(), ctx=getattr(e, "ctx", None))
            return int(e.exit_code)
        _rich_error(e.format_message())
        return int(e.exit_code)
    except click.exceptions.Abort:
        _rich_error("aborted")
        return 1
    except UsageError as e:
        _render_usage_error_with_help(
            message=str(e),
            fallback_help=_root_help_text(root_app=root_app, prog_name=prog_name),
        )
        return 2
    except OpError as e:
        _rich_error(str(e))
        return 1


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name="m365", argv=argv)

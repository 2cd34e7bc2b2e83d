"""SharePoint Online commands.

REST calls go to the site the user names; tenant administration goes through
the CSOM ``ProcessQuery`` endpoint of the tenant admin site.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any
from urllib.parse import quote
from xml.sax.saxutils import escape

from . import __version__
from .cli_shared import GlobalOpts, OpError, UsageError, _parse_csv
from .command_base import (
    Command,
    CommandOutput,
    OptionDescriptor,
    OptionSet,
    Validator,
    run_command,
)
from .graph_client import JSON_NOMETADATA, odata_literal
from .long_running import OperationHandle, OperationStatus, PollState, wait_for_operation
from .validation import (
    is_valid_guid,
    is_valid_integer,
    is_valid_sharepoint_url,
    server_relative_path,
    tenant_admin_url,
)

CSOM_APPLICATION_NAME = f"m365-cli {__version__}"
CSOM_TENANT_TYPE_ID = "{268004ae-ef6b-4e9b-8425-127220d84719}"
CSOM_CONTEXT_WEB_TYPE_ID = "{3747adcd-a3c3-41b9-bfab-4a64dd2f1e0a}"

_ATTR_ENTITIES = {"\"": "&quot;", "\n": "&#xA;"}


async def _poll_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _encode(val: str) -> str:
    return quote(str(val), safe="")


def _list_segment(args: argparse.Namespace) -> str:
    if getattr(args, "list_id", None):
        return f"lists(guid'{_encode(args.list_id)}')"
    return f"lists/GetByTitle('{_encode(args.list_title)}')"


class SpoEventReceiverGetCommand(Command):
    name = "spo eventreceiver get"
    description = "Gets a specific event receiver attached to the web, site or list by receiver name or id"
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("list_title", "--list-title"),
        OptionDescriptor("list_id", "--list-id"),
        OptionDescriptor("list_url", "--list-url"),
        OptionDescriptor("name", "--name", short="-n"),
        OptionDescriptor("id", "--id", short="-i"),
        OptionDescriptor("scope", "--scope", short="-s"),
    )
    option_sets = (OptionSet(("name", "id")),)

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        list_options = [v for v in (args.list_id, args.list_title, args.list_url) if v is not None]
        if len(list_options) > 1:
            return "Specify either list id or title or list url"
        if args.list_id and not is_valid_guid(args.list_id):
            return f"{args.list_id} is not a valid GUID"
        if args.scope and args.scope not in ("web", "site"):
            return f"{args.scope} is not a valid type value. Allowed values web|site."
        if args.scope == "site" and list_options:
            return "Scope cannot be set to site when retrieving list event receivers."
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        web_url = args.web_url.rstrip("/")
        list_part = ""
        if args.list_id or args.list_title:
            list_part = _list_segment(args) + "/"
        elif args.list_url:
            list_part = f"GetList('{_encode(server_relative_path(web_url, args.list_url))}')/"

        if args.scope == "site":
            url = f"{web_url}/_api/site/eventreceivers"
        else:
            url = f"{web_url}/_api/web/{list_part}eventreceivers"
        if args.id:
            flt = f"receiverid eq (guid'{args.id}')"
        else:
            flt = f"receivername eq '{odata_literal(args.name)}'"
        resp = await session.get(f"{url}?$filter={_encode(flt)}", headers={"accept": JSON_NOMETADATA})
        out.log((resp or {}).get("value") or [])


class SpoListItemAttachmentListCommand(Command):
    name = "spo listitem attachment list"
    description = "Gets the attachments associated to a list item"
    default_properties = ("FileName", "ServerRelativeUrl")
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("item_id", "--item-id", required=True),
        OptionDescriptor("list_id", "--list-id"),
        OptionDescriptor("list_title", "--list-title"),
    )
    option_sets = (OptionSet(("list_id", "list_title")),)

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        if args.list_id and not is_valid_guid(args.list_id):
            return f"{args.list_id} in option list-id is not a valid GUID"
        if not is_valid_integer(args.item_id):
            return f"{args.item_id} is not a number"
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        url = (
            f"{args.web_url.rstrip('/')}/_api/web/{_list_segment(args)}"
            f"/items({int(args.item_id)})?$select=AttachmentFiles&$expand=AttachmentFiles"
        )
        resp = await session.get(url, headers={"accept": JSON_NOMETADATA})
        files = (resp or {}).get("AttachmentFiles") or []
        if files:
            out.log(files, properties=self.default_properties)
        else:
            out.verbose("No attachments found")


class SpoListContentTypeRemoveCommand(Command):
    name = "spo list contenttype remove"
    description = "Removes content type from list"
    destructive = True
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("list_id", "--list-id", short="-l"),
        OptionDescriptor("list_title", "--list-title", short="-t"),
        OptionDescriptor("content_type_id", "--content-type-id", short="-c", required=True),
        OptionDescriptor("confirm", "--confirm", boolean=True),
    )
    option_sets = (OptionSet(("list_id", "list_title")),)

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        if args.list_id and not is_valid_guid(args.list_id):
            return f"{args.list_id} is not a valid GUID"
        return True

    def confirm_message(self, args: argparse.Namespace) -> str:
        list_name = args.list_id or args.list_title
        return (
            f"Are you sure you want to remove the content type {args.content_type_id} "
            f"from the list {list_name} in site {args.web_url}?"
        )

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        out.verbose(f"Removing content type {args.content_type_id} from list {args.list_id or args.list_title}...")
        url = (
            f"{args.web_url.rstrip('/')}/_api/web/{_list_segment(args)}"
            f"/ContentTypes('{_encode(args.content_type_id)}')"
        )
        await session.post(
            url,
            headers={
                "accept": JSON_NOMETADATA,
                "X-HTTP-Method": "DELETE",
                "If-Match": "*",
            },
        )


def _csom_request(actions: str, object_paths: str) -> str:
    return (
        '<Request AddExpandoFieldTypeSuffix="true" SchemaVersion="15.0.0.0" LibraryVersion="16.0.0.0" '
        f'ApplicationName="{CSOM_APPLICATION_NAME}" '
        'xmlns="http://schemas.microsoft.com/sharepoint/clientquery/2009">'
        f"<Actions>{actions}</Actions><ObjectPaths>{object_paths}</ObjectPaths></Request>"
    )


def csom_error_message(resp: Any) -> str | None:
    for entry in resp if isinstance(resp, list) else ():
        error_info = entry.get("ErrorInfo") if isinstance(entry, dict) else None
        if error_info:
            return str(error_info.get("ErrorMessage") or "ProcessQuery failed")
    return None


async def request_digest(session: Any, site_url: str) -> str:
    resp = await session.post(f"{site_url}/_api/contextinfo", headers={"accept": JSON_NOMETADATA})
    digest = str((resp or {}).get("FormDigestValue") or "").strip()
    if not digest:
        raise OpError(f"could not retrieve a form digest from {site_url}")
    return digest


def remove_deleted_site_body(site_url: str) -> str:
    return _csom_request(
        '<ObjectPath Id="16" ObjectPathId="15" /><Query Id="17" ObjectPathId="15">'
        '<Query SelectAllProperties="false"><Properties>'
        '<Property Name="PollingInterval" ScalarProperty="true" />'
        '<Property Name="IsComplete" ScalarProperty="true" />'
        "</Properties></Query></Query>",
        '<Method Id="15" ParentId="1" Name="RemoveDeletedSite"><Parameters>'
        f'<Parameter Type="String">{escape(site_url)}</Parameter>'
        f'</Parameters></Method><Constructor Id="1" TypeId="{CSOM_TENANT_TYPE_ID}" />',
    )


def operation_status_body(identity: str) -> str:
    return _csom_request(
        '<Query Id="188" ObjectPathId="184"><Query SelectAllProperties="false"><Properties>'
        '<Property Name="IsComplete" ScalarProperty="true" />'
        '<Property Name="PollingInterval" ScalarProperty="true" />'
        "</Properties></Query></Query>",
        f'<Identity Id="184" Name="{escape(identity, _ATTR_ENTITIES)}" />',
    )


def parse_spo_operation(resp: Any) -> OperationStatus:
    """Read a ``ProcessQuery`` response carrying an ``SpoOperation``."""
    if not isinstance(resp, list) or not resp:
        raise OpError("unexpected ProcessQuery response")
    error = csom_error_message(resp)
    if error:
        raise OpError(error)
    operation = resp[-1]
    if not isinstance(operation, dict):
        raise OpError("unexpected ProcessQuery response: missing operation")
    return OperationStatus(
        handle=OperationHandle(
            identity=str(operation.get("_ObjectIdentity_") or ""),
            polling_interval_ms=int(operation.get("PollingInterval") or 0),
        ),
        is_complete=bool(operation.get("IsComplete")),
    )


FIELD_ADD_OPTIONS = {
    "DefaultValue": 0,
    "AddToDefaultContentType": 1,
    "AddToNoContentType": 2,
    "AddToAllContentTypes": 4,
    "AddFieldInternalNameHint": 8,
    "AddFieldToDefaultView": 16,
    "AddFieldCheckDisplayName": 32,
}


def field_add_options_value(raw: str | None) -> int:
    """Sum of the ``AddFieldOptions`` flags named in a comma-separated list."""
    if not raw:
        return 0
    return sum(FIELD_ADD_OPTIONS.get(o.strip(), 0) for o in raw.split(","))


class SpoFieldAddCommand(Command):
    name = "spo field add"
    description = "Adds a new list or site column using the CAML field definition"
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("list_title", "--list-title", short="-l"),
        OptionDescriptor("xml", "--xml", short="-x", required=True),
        OptionDescriptor("options", "--options"),
    )

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        if args.options:
            for o in args.options.split(","):
                o = o.strip()
                if o not in FIELD_ADD_OPTIONS:
                    return (
                        f"{o} is not a valid value for the options argument. "
                        f"Allowed values are {'|'.join(FIELD_ADD_OPTIONS)}"
                    )
        return True

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        web_url = args.web_url.rstrip("/")
        digest = await request_digest(session, web_url)
        list_part = f"lists/getByTitle('{_encode(args.list_title)}')/" if args.list_title else ""
        resp = await session.post(
            f"{web_url}/_api/web/{list_part}fields/CreateFieldAsXml",
            headers={"X-RequestDigest": digest, "accept": JSON_NOMETADATA},
            json_body={
                "parameters": {
                    "SchemaXml": args.xml,
                    "Options": field_add_options_value(args.options),
                }
            },
        )
        out.log(resp)


def parse_field_values(extra: list[str]) -> dict[str, str]:
    """Turn leftover ``--Name value`` / ``--Name=value`` pairs into field values.

    A name with no value (the next token is another option, or there is none)
    is treated as a switch and set to ``true``.
    """
    fields: dict[str, str] = {}
    i = 0
    while i < len(extra):
        token = extra[i]
        if not token.startswith("--") or len(token) == 2:
            raise UsageError(f"unexpected argument '{token}'; field values are passed as --<InternalName> <value>")
        name, sep, value = token[2:].partition("=")
        if not sep:
            if i + 1 < len(extra) and not extra[i + 1].startswith("--"):
                value = extra[i + 1]
                i += 1
            else:
                value = "true"
        fields[name] = value
        i += 1
    return fields


def web_identity_body() -> str:
    return _csom_request(
        '<Query Id="1" ObjectPathId="5"><Query SelectAllProperties="false"><Properties>'
        '<Property Name="ServerRelativeUrl" ScalarProperty="true" />'
        "</Properties></Query></Query>",
        '<Property Id="5" ParentId="3" Name="Web" />'
        f'<StaticProperty Id="3" TypeId="{CSOM_CONTEXT_WEB_TYPE_ID}" Name="Current" />',
    )


def system_update_body(web_identity: str, list_id: str, item_id: int, fields: dict[str, str]) -> str:
    methods = [
        f'<Method Name="ParseAndSetFieldValue" Id="{n}" ObjectPathId="147"><Parameters>'
        f'<Parameter Type="String">{escape(name)}</Parameter>'
        f'<Parameter Type="String">{escape(value)}</Parameter>'
        "</Parameters></Method>"
        for n, (name, value) in enumerate(fields.items(), start=1)
    ]
    methods.append(f'<Method Name="SystemUpdate" Id="{len(methods) + 1}" ObjectPathId="147" />')
    item_path = f"{web_identity}:list:{list_id}:item:{item_id},1"
    return _csom_request(
        "".join(methods),
        f'<Identity Id="147" Name="{escape(item_path, _ATTR_ENTITIES)}" />',
    )


class SpoListItemSetCommand(Command):
    name = "spo listitem set"
    description = "Updates a list item in the specified list"
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("id", "--id", short="-i", required=True),
        OptionDescriptor("list_id", "--list-id", short="-l"),
        OptionDescriptor("list_title", "--list-title", short="-t"),
        OptionDescriptor("content_type", "--content-type", short="-c"),
        OptionDescriptor("system_update", "--system-update", short="-s", boolean=True),
    )
    option_sets = (OptionSet(("list_id", "list_title")),)

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        if args.list_id and not is_valid_guid(args.list_id):
            return f"{args.list_id} in option list-id is not a valid GUID"
        if not is_valid_integer(args.id):
            return f"{args.id} is not a number"
        return True

    async def _content_type_name(
        self, session: Any, list_url: str, content_type: str, out: CommandOutput
    ) -> str:
        out.verbose("Getting content types for list...")
        resp = await session.get(f"{list_url}/contenttypes?$select=Name,Id", headers={"accept": JSON_NOMETADATA})
        for ct in (resp or {}).get("value") or []:
            ct_id = (ct.get("Id") or {}).get("StringValue")
            if content_type in (ct_id, ct.get("Name")):
                out.debug(f"using content type name: {ct.get('Name')}")
                return str(ct.get("Name"))
        raise OpError(f"Specified content type '{content_type}' doesn't exist on the target list")

    async def _web_identity(self, session: Any, web_url: str, digest: str) -> str:
        resp = await session.post(
            f"{web_url}/_vti_bin/client.svc/ProcessQuery",
            headers={"X-RequestDigest": digest, "content-type": "text/xml"},
            data=web_identity_body(),
        )
        error = csom_error_message(resp)
        if error:
            raise OpError(error)
        for entry in resp if isinstance(resp, list) else ():
            if isinstance(entry, dict) and entry.get("_ObjectIdentity_"):
                return str(entry["_ObjectIdentity_"])
        raise OpError("Cannot proceed. _ObjectIdentity_ not found")

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        web_url = args.web_url.rstrip("/")
        list_url = f"{web_url}/_api/web/{_list_segment(args)}"
        fields = dict(getattr(args, "fields", None) or {})

        list_id = ""
        if args.system_update:
            out.verbose("Getting list id...")
            resp = await session.get(f"{list_url}/id", headers={"accept": JSON_NOMETADATA})
            list_id = str((resp or {}).get("value") or "")

        if args.content_type:
            fields["ContentType"] = await self._content_type_name(session, list_url, args.content_type, out)

        out.verbose(f"Updating item in list {args.list_id or args.list_title} in site {web_url}...")
        if args.system_update:
            digest = await request_digest(session, web_url)
            identity = await self._web_identity(session, web_url, digest)
            item_id = int(args.id)
            resp = await session.post(
                f"{web_url}/_vti_bin/client.svc/ProcessQuery",
                headers={"X-RequestDigest": digest, "content-type": "text/xml"},
                data=system_update_body(identity, list_id, item_id, fields),
            )
            error = csom_error_message(resp)
            if error:
                raise OpError(f"Error occurred in systemUpdate operation - {error}")
        else:
            resp = await session.post(
                f"{list_url}/items({int(args.id)})/ValidateUpdateListItem()",
                headers={"accept": JSON_NOMETADATA},
                json_body={"formValues": [{"FieldName": k, "FieldValue": v} for k, v in fields.items()]},
            )
            updated = (resp or {}).get("value") or [{}]
            item_id = updated[0].get("ItemId")
            if not item_id:
                raise OpError("Item didn't update successfully")

        item = await session.get(f"{list_url}/items({item_id})", headers={"accept": JSON_NOMETADATA})
        out.log(item)


PAGE_HEADER_ID = "cbe7b0a9-3504-44dd-a3a3-0e5cacd07788"


def _number(val: str | float | None) -> int | float:
    num = float(val or 0)
    return int(num) if num.is_integer() else num


def page_header_control(
    args: argparse.Namespace,
    *,
    title: str | None = None,
    image: dict[str, str] | None = None,
) -> dict[str, Any]:
    """The ``Title Region`` control stored in a page's ``LayoutWebpartsContent``."""
    header_type = args.type or "Default"
    server_content: dict[str, Any] = {"htmlStrings": {}, "searchablePlainTexts": {}, "imageSources": {}, "links": {}}
    props: dict[str, Any] = {}
    if title is not None:
        props["title"] = title
    props.update(
        imageSourceType=2 if header_type == "Custom" else 4,
        layoutType="NoImage" if header_type == "None" else (args.layout or "FullWidthImage"),
        textAlignment=args.text_alignment or "Left",
        showTopicHeader=bool(args.show_topic_header),
        showPublishDate=bool(args.show_publish_date),
        topicHeader=args.topic_header or "",
    )
    if header_type == "Custom":
        image = image or {"siteId": "", "webId": "", "listId": "", "uniqueId": ""}
        server_content["imageSources"] = {"imageSource": args.image_url or ""}
        server_content["customMetadata"] = {"imageSource": dict(image)}
        props.update(
            authors=[],
            altText=args.alt_text or "",
            webId=image["webId"],
            siteId=image["siteId"],
            listId=image["listId"],
            uniqueId=image["uniqueId"],
            translateX=_number(args.translate_x),
            translateY=_number(args.translate_y),
        )
    return {
        "id": PAGE_HEADER_ID,
        "instanceId": PAGE_HEADER_ID,
        "title": "Title Region",
        "description": "Title Region Description",
        "serverProcessedContent": server_content,
        "dataVersion": "1.4",
        "properties": props,
    }


class SpoPageHeaderSetCommand(Command):
    name = "spo page header set"
    description = "Sets modern page header"
    options = (
        OptionDescriptor("web_url", "--web-url", short="-u", required=True),
        OptionDescriptor("page_name", "--page-name", short="-n", required=True),
        OptionDescriptor("type", "--type", autocomplete=("None", "Default", "Custom")),
        OptionDescriptor("image_url", "--image-url"),
        OptionDescriptor("alt_text", "--alt-text"),
        OptionDescriptor("translate_x", "--translate-x"),
        OptionDescriptor("translate_y", "--translate-y"),
        OptionDescriptor("layout", "--layout", autocomplete=("FullWidthImage", "NoImage", "ColorBlock", "CutInShape")),
        OptionDescriptor("text_alignment", "--text-alignment", autocomplete=("Left", "Center")),
        OptionDescriptor("show_topic_header", "--show-topic-header", boolean=True),
        OptionDescriptor("show_publish_date", "--show-publish-date", boolean=True),
        OptionDescriptor("topic_header", "--topic-header"),
        OptionDescriptor("authors", "--authors"),
    )

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        url_ok = is_valid_sharepoint_url(args.web_url)
        if url_ok is not True:
            return url_ok
        for value in (args.translate_x, args.translate_y):
            if value is None:
                continue
            try:
                float(value)
            except (TypeError, ValueError):
                return f"{value} is not a valid number"
        return True

    async def _image_ids(self, session: Any, web_url: str, image_url: str) -> dict[str, str]:
        headers = {"accept": JSON_NOMETADATA}
        site = await session.get(f"{web_url}/_api/site?$select=Id", headers=headers)
        web = await session.get(f"{web_url}/_api/web?$select=Id", headers=headers)
        image = await session.get(
            f"{web_url}/_api/web/getfilebyserverrelativeurl('{_encode(image_url)}')?$select=ListId,UniqueId",
            headers=headers,
        )
        return {
            "siteId": str((site or {}).get("Id") or ""),
            "webId": str((web or {}).get("Id") or ""),
            "listId": str((image or {}).get("ListId") or ""),
            "uniqueId": str((image or {}).get("UniqueId") or ""),
        }

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        web_url = args.web_url.rstrip("/")
        page_name = args.page_name if args.page_name.lower().endswith(".aspx") else f"{args.page_name}.aspx"
        page_url = f"{web_url}/_api/sitepages/pages/GetByUrl('sitepages/{_encode(page_name)}')"
        headers = {"accept": JSON_NOMETADATA}

        page = await session.get(f"{page_url}?$select=IsPageCheckedOutToCurrentUser,Title", headers=headers) or {}
        if page.get("IsPageCheckedOutToCurrentUser"):
            page_data = await session.get(f"{page_url}?$expand=ListItemAllFields", headers=headers)
        else:
            out.verbose(f"Checking out page {page_name}...")
            page_data = await session.post(f"{page_url}/checkoutpage", headers=headers)
        canvas = page_data.get("CanvasContent1") if isinstance(page_data, dict) else None

        image = None
        if args.type == "Custom" and args.image_url:
            image = await self._image_ids(session, web_url, args.image_url)

        title = None if canvas else str(page.get("Title") or "")
        control = page_header_control(args, title=title, image=image)
        body: dict[str, Any] = {
            "LayoutWebpartsContent": json.dumps([control], separators=(",", ":")),
        }
        authors = _parse_csv(args.authors)
        if canvas:
            if authors:
                body["AuthorByline"] = authors
            body["CanvasContent1"] = canvas
        else:
            body["Title"] = title
            body["AuthorByline"] = authors

        out.verbose(f"Saving page {page_name} as draft...")
        await session.post(f"{page_url}/SavePageAsDraft", headers=headers, json_body=body)


class SpoTenantRecycleBinItemRemoveCommand(Command):
    name = "spo tenant recyclebinitem remove"
    description = "Removes the specified deleted Site Collection from Tenant Recycle Bin"
    destructive = True
    options = (
        OptionDescriptor("site_url", "--site-url", short="-u", required=True),
        OptionDescriptor("wait", "--wait", boolean=True),
        OptionDescriptor("confirm", "--confirm", boolean=True),
    )

    def validators(self) -> list[Validator]:
        return [self._validate]

    async def _validate(self, args: argparse.Namespace) -> bool | str:
        return is_valid_sharepoint_url(args.site_url)

    def confirm_message(self, args: argparse.Namespace) -> str:
        return f"Are you sure you want to remove the deleted site collection {args.site_url} from tenant recycle bin?"

    async def action(self, session: Any, args: argparse.Namespace, out: CommandOutput) -> None:
        admin_url = tenant_admin_url(args.site_url)
        digest = await request_digest(session, admin_url)
        process_query = f"{admin_url}/_vti_bin/client.svc/ProcessQuery"
        headers = {"X-RequestDigest": digest, "content-type": "text/xml"}

        out.verbose(f"Removing deleted site collection {args.site_url} from the tenant recycle bin...")
        initial = parse_spo_operation(
            await session.post(process_query, headers=headers, data=remove_deleted_site_body(args.site_url))
        )

        async def check_status(handle: OperationHandle) -> OperationStatus:
            resp = await session.post(process_query, headers=headers, data=operation_status_body(handle.identity))
            return parse_spo_operation(resp)

        def on_poll(state: PollState, status: OperationStatus) -> None:
            out.debug(f"operation {state.value}: complete={status.is_complete}")

        await wait_for_operation(
            initial,
            check_status,
            wait=bool(args.wait),
            sleep=_poll_sleep,
            on_poll=on_poll,
        )


EVENTRECEIVER_GET = SpoEventReceiverGetCommand()
LISTITEM_ATTACHMENT_LIST = SpoListItemAttachmentListCommand()
LIST_CONTENTTYPE_REMOVE = SpoListContentTypeRemoveCommand()
FIELD_ADD = SpoFieldAddCommand()
LISTITEM_SET = SpoListItemSetCommand()
PAGE_HEADER_SET = SpoPageHeaderSetCommand()
TENANT_RECYCLEBINITEM_REMOVE = SpoTenantRecycleBinItemRemoveCommand()


def cmd_spo_eventreceiver_get(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(EVENTRECEIVER_GET, args, g)


def cmd_spo_listitem_attachment_list(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(LISTITEM_ATTACHMENT_LIST, args, g)


def cmd_spo_list_contenttype_remove(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(LIST_CONTENTTYPE_REMOVE, args, g)


def cmd_spo_tenant_recyclebinitem_remove(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(TENANT_RECYCLEBINITEM_REMOVE, args, g)


def cmd_spo_field_add(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(FIELD_ADD, args, g)


def cmd_spo_listitem_set(args: argparse.Namespace, g: GlobalOpts) -> int:
    args.fields = parse_field_values(list(getattr(args, "field_args", None) or []))
    return run_command(LISTITEM_SET, args, g)


def cmd_spo_page_header_set(args: argparse.Namespace, g: GlobalOpts) -> int:
    return run_command(PAGE_HEADER_SET, args, g)

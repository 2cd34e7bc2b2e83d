import asyncio
import json

import pytest

from m365_cli import spo_commands
from m365_cli.cli_shared import GlobalOpts, OpError, UsageError
from m365_cli.command_base import build_args, execute_command

WEB = "https://contoso.sharepoint.com/sites/hr"
ADMIN = "https://contoso-admin.sharepoint.com"
LIST_ID = "0cd891ef-afce-4e55-b836-fce03286cccf"
RECEIVER_ID = "625b1f4c-2869-457f-8b41-bed72059bb2b"
PROCESS_QUERY = f"{ADMIN}/_vti_bin/client.svc/ProcessQuery"
OPERATION_IDENTITY = (
    "5e0d879f-207a-2000-5eb4-5be71488a82a|908bed80-a04a-4433-b4a0-883d9847d110:"
    "1fdd85e0-9a94-4593-8ab0-5ad1b834475f\nSpoOperation\nRemoveDeletedSite\n637392077403920220\n"
    "https%3a%2f%2fcontoso.sharepoint.com%2fsites%2fhr\n67edbe85-2b95-4c7b-a34a-1abbcd68dbe4"
)


def _execute(command, session, *, g=None, prompt=None, **values):
    args = build_args(command, **values)
    return asyncio.run(execute_command(command, args, session, g or GlobalOpts(pretty=False), prompt=prompt))


def _operation(identity: str, *, complete: bool, interval: int = 15000) -> list:
    return [
        {"SchemaVersion": "15.0.0.0", "LibraryVersion": "16.0.20614.12002", "ErrorInfo": None},
        16,
        {"IsNull": False},
        17,
        {
            "_ObjectType_": "Microsoft.Online.SharePoint.TenantAdministration.SpoOperation",
            "_ObjectIdentity_": identity,
            "PollingInterval": interval,
            "IsComplete": complete,
        },
    ]


def test_eventreceiver_get_web_by_name(fake_session, capsys):
    url = f"{WEB}/_api/web/eventreceivers?$filter=receivername%20eq%20%27er1%27"
    session = fake_session({("GET", url): {"value": [{"ReceiverName": "er1"}]}})

    _execute(spo_commands.EVENTRECEIVER_GET, session, web_url=WEB, name="er1")

    assert session.calls[0]["headers"]["accept"] == "application/json;odata=nometadata"
    assert json.loads(capsys.readouterr().out) == [{"ReceiverName": "er1"}]


def test_eventreceiver_get_list_by_title(fake_session):
    url = f"{WEB}/_api/web/lists/GetByTitle('Documents')/eventreceivers?$filter=receivername%20eq%20%27er1%27"
    session = fake_session({("GET", url): {"value": []}})

    _execute(spo_commands.EVENTRECEIVER_GET, session, web_url=WEB, list_title="Documents", name="er1")

    assert session.calls[0]["url"] == url


def test_eventreceiver_get_site_scope_by_id(fake_session):
    url = f"{WEB}/_api/site/eventreceivers?$filter=receiverid%20eq%20%28guid%27{RECEIVER_ID}%27%29"
    session = fake_session({("GET", url): {"value": []}})

    _execute(spo_commands.EVENTRECEIVER_GET, session, web_url=WEB, scope="site", id=RECEIVER_ID)

    assert session.calls[0]["url"] == url


def test_eventreceiver_get_rejects_site_scope_with_list(fake_session):
    with pytest.raises(UsageError, match="Scope cannot be set to site when retrieving list event receivers."):
        _execute(
            spo_commands.EVENTRECEIVER_GET,
            fake_session(),
            web_url=WEB,
            scope="site",
            list_title="Documents",
            name="er1",
        )


def test_eventreceiver_get_rejects_unknown_scope(fake_session):
    with pytest.raises(UsageError, match="huge is not a valid type value. Allowed values web\\|site."):
        _execute(spo_commands.EVENTRECEIVER_GET, fake_session(), web_url=WEB, scope="huge", name="er1")


def test_eventreceiver_get_checks_url_before_scope(fake_session):
    with pytest.raises(UsageError, match="'https://example.com' is not a valid SharePoint Online site URL"):
        _execute(
            spo_commands.EVENTRECEIVER_GET,
            fake_session(),
            web_url="https://example.com",
            scope="huge",
            name="er1",
        )


def test_eventreceiver_get_rejects_two_list_options(fake_session):
    with pytest.raises(UsageError, match="Specify either list id or title or list url"):
        _execute(
            spo_commands.EVENTRECEIVER_GET,
            fake_session(),
            web_url=WEB,
            list_id=LIST_ID,
            list_title="Documents",
            name="er1",
        )


def test_eventreceiver_get_rejects_non_sharepoint_url(fake_session):
    with pytest.raises(UsageError, match="'https://example.com' is not a valid SharePoint Online site URL"):
        _execute(spo_commands.EVENTRECEIVER_GET, fake_session(), web_url="https://example.com", name="er1")


def test_attachment_list_prints_files(fake_session, capsys):
    url = f"{WEB}/_api/web/lists/GetByTitle('Documents')/items(1)?$select=AttachmentFiles&$expand=AttachmentFiles"
    files = [{"FileName": "a.txt", "ServerRelativeUrl": "/sites/hr/Lists/Documents/Attachments/1/a.txt"}]
    session = fake_session({("GET", url): {"AttachmentFiles": files}})

    _execute(spo_commands.LISTITEM_ATTACHMENT_LIST, session, web_url=WEB, list_title="Documents", item_id="1")

    assert json.loads(capsys.readouterr().out) == files


def test_attachment_list_verbose_reports_no_attachments(fake_session, capsys):
    url = f"{WEB}/_api/web/lists(guid'{LIST_ID}')/items(3)?$select=AttachmentFiles&$expand=AttachmentFiles"
    session = fake_session({("GET", url): {"AttachmentFiles": []}})

    _execute(
        spo_commands.LISTITEM_ATTACHMENT_LIST,
        session,
        g=GlobalOpts(pretty=False, verbose=True),
        web_url=WEB,
        list_id=LIST_ID,
        item_id="3",
    )

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "No attachments found" in captured.err


def test_attachment_list_rejects_non_numeric_item_id(fake_session):
    with pytest.raises(UsageError, match="abc is not a number"):
        _execute(
            spo_commands.LISTITEM_ATTACHMENT_LIST,
            fake_session(),
            web_url=WEB,
            list_title="Documents",
            item_id="abc",
        )


def test_contenttype_remove_posts_delete_override(fake_session):
    url = f"{WEB}/_api/web/lists(guid'{LIST_ID}')/ContentTypes('0x0120')"
    session = fake_session({("POST", url): None})

    _execute(
        spo_commands.LIST_CONTENTTYPE_REMOVE,
        session,
        web_url=WEB,
        list_id=LIST_ID,
        content_type_id="0x0120",
        confirm=True,
    )

    headers = session.calls[0]["headers"]
    assert headers["X-HTTP-Method"] == "DELETE"
    assert headers["If-Match"] == "*"


def test_contenttype_remove_by_title(fake_session):
    url = f"{WEB}/_api/web/lists/GetByTitle('Documents')/ContentTypes('0x0120')"
    session = fake_session({("POST", url): None})

    _execute(
        spo_commands.LIST_CONTENTTYPE_REMOVE,
        session,
        web_url=WEB,
        list_title="Documents",
        content_type_id="0x0120",
        confirm=True,
    )

    assert session.calls[0]["url"] == url


def test_contenttype_remove_declined(fake_session):
    session = fake_session()
    asked = []

    def prompt(msg):
        asked.append(msg)
        return False

    code = _execute(
        spo_commands.LIST_CONTENTTYPE_REMOVE,
        session,
        prompt=prompt,
        web_url=WEB,
        list_title="Documents",
        content_type_id="0x0120",
    )

    assert code == 0
    assert session.calls == []
    assert asked == [f"Are you sure you want to remove the content type 0x0120 from the list Documents in site {WEB}?"]


def test_contenttype_remove_requires_content_type_id(fake_session):
    with pytest.raises(UsageError, match="Required option --content-type-id not specified"):
        _execute(spo_commands.LIST_CONTENTTYPE_REMOVE, fake_session(), web_url=WEB, list_title="Documents")


def test_remove_deleted_site_body_matches_csom_request():
    body = spo_commands.remove_deleted_site_body(WEB)

    assert body.startswith('<Request AddExpandoFieldTypeSuffix="true" SchemaVersion="15.0.0.0"')
    assert (
        '<Method Id="15" ParentId="1" Name="RemoveDeletedSite"><Parameters>'
        f'<Parameter Type="String">{WEB}</Parameter></Parameters></Method>'
    ) in body
    assert '<Constructor Id="1" TypeId="{268004ae-ef6b-4e9b-8425-127220d84719}" />' in body


def test_operation_status_body_encodes_identity_newlines():
    body = spo_commands.operation_status_body("a|b\nSpoOperation\nRemoveDeletedSite")

    assert '<Identity Id="184" Name="a|b&#xA;SpoOperation&#xA;RemoveDeletedSite" />' in body
    assert '<Query Id="188" ObjectPathId="184">' in body


def _recyclebin_session(fake_session, *process_query_responses):
    return fake_session(
        {
            ("POST", f"{ADMIN}/_api/contextinfo"): {"FormDigestValue": "abc"},
            ("POST", PROCESS_QUERY): iter(process_query_responses),
        }
    )


def test_recyclebinitem_remove_without_wait_does_not_poll(fake_session):
    session = _recyclebin_session(fake_session, _operation(OPERATION_IDENTITY, complete=False))

    _execute(spo_commands.TENANT_RECYCLEBINITEM_REMOVE, session, site_url=WEB, confirm=True)

    assert [c["url"] for c in session.calls] == [f"{ADMIN}/_api/contextinfo", PROCESS_QUERY]
    assert session.calls[1]["headers"]["X-RequestDigest"] == "abc"
    assert session.calls[1]["data"] == spo_commands.remove_deleted_site_body(WEB)


def test_recyclebinitem_remove_wait_polls_until_complete(fake_session, monkeypatch):
    waits = []

    async def fake_sleep(seconds):
        waits.append(seconds)

    monkeypatch.setattr(spo_commands, "_poll_sleep", fake_sleep)
    session = _recyclebin_session(
        fake_session,
        _operation(OPERATION_IDENTITY, complete=False, interval=15000),
        _operation("second-identity", complete=True, interval=5000),
    )

    _execute(spo_commands.TENANT_RECYCLEBINITEM_REMOVE, session, site_url=WEB, confirm=True, wait=True)

    assert len(session.calls) == 3
    assert waits == [15.0]
    assert session.calls[2]["data"] == spo_commands.operation_status_body(OPERATION_IDENTITY)
    assert "&#xA;SpoOperation&#xA;RemoveDeletedSite&#xA;" in session.calls[2]["data"]


def test_recyclebinitem_remove_wait_with_completed_operation(fake_session, monkeypatch):
    async def fail_sleep(_seconds):
        raise AssertionError("must not wait")

    monkeypatch.setattr(spo_commands, "_poll_sleep", fail_sleep)
    session = _recyclebin_session(fake_session, _operation(OPERATION_IDENTITY, complete=True))

    _execute(spo_commands.TENANT_RECYCLEBINITEM_REMOVE, session, site_url=WEB, confirm=True, wait=True)

    assert len(session.calls) == 2


def test_recyclebinitem_remove_surfaces_csom_error(fake_session):
    error = [
        {
            "SchemaVersion": "15.0.0.0",
            "ErrorInfo": {
                "ErrorMessage": "Unable to find the deleted site: https://contoso.sharepoint.com/sites/hr.",
                "ErrorCode": -2147024809,
            },
        }
    ]
    session = _recyclebin_session(fake_session, error)

    with pytest.raises(OpError, match="Unable to find the deleted site: https://contoso.sharepoint.com/sites/hr."):
        _execute(spo_commands.TENANT_RECYCLEBINITEM_REMOVE, session, site_url=WEB, confirm=True, wait=True)


def test_recyclebinitem_remove_declined(fake_session):
    session = fake_session()

    code = _execute(
        spo_commands.TENANT_RECYCLEBINITEM_REMOVE,
        session,
        prompt=lambda _msg: False,
        site_url=WEB,
    )

    assert code == 0
    assert session.calls == []


def test_recyclebinitem_remove_rejects_invalid_url(fake_session):
    with pytest.raises(UsageError, match="'foo' is not a valid SharePoint Online site URL"):
        _execute(spo_commands.TENANT_RECYCLEBINITEM_REMOVE, fake_session(), site_url="foo", confirm=True)


LIST_URL = f"{WEB}/_api/web/lists/GetByTitle('Demo')"
WEB_PROCESS_QUERY = f"{WEB}/_vti_bin/client.svc/ProcessQuery"
WEB_IDENTITY = (
    "740c6a0b-85e2-48a0-a494-e0f1759d4aa7|7a2a0a5f-8f4b-4e42-a1b3-2e4f0d9c1f11:"
    "site:1d5f1d0b-0c0e-4a63-a6a5-7b8a9a5f0f7e:web:0df4d2d2-5ecf-45e9-94f5-c638106bfc65"
)


def test_field_add_creates_site_column(fake_session, capsys):
    xml = '<Field Type="Text" DisplayName="Code" Name="Code" />'
    url = f"{WEB}/_api/web/fields/CreateFieldAsXml"
    session = fake_session(
        {
            ("POST", f"{WEB}/_api/contextinfo"): {"FormDigestValue": "digest"},
            ("POST", url): {"Id": "5ee2dd25-d941-455a-9bdb-7f2c54aed11b", "InternalName": "Code"},
        }
    )

    _execute(spo_commands.FIELD_ADD, session, web_url=WEB, xml=xml)

    call = session.calls[1]
    assert call["headers"]["X-RequestDigest"] == "digest"
    assert call["json"] == {"parameters": {"SchemaXml": xml, "Options": 0}}
    assert json.loads(capsys.readouterr().out)["InternalName"] == "Code"


def test_field_add_list_column_sums_options(fake_session):
    url = f"{WEB}/_api/web/lists/getByTitle('Demo%20List')/fields/CreateFieldAsXml"
    session = fake_session(
        {
            ("POST", f"{WEB}/_api/contextinfo"): {"FormDigestValue": "digest"},
            ("POST", url): {"Id": "f1"},
        }
    )

    _execute(
        spo_commands.FIELD_ADD,
        session,
        web_url=WEB,
        list_title="Demo List",
        xml="<Field />",
        options="AddToDefaultContentType, AddFieldToDefaultView",
    )

    assert session.calls[1]["json"]["parameters"]["Options"] == 17


def test_field_add_rejects_unknown_option(fake_session):
    session = fake_session()

    with pytest.raises(UsageError, match="Invalid is not a valid value for the options argument. Allowed values are"):
        _execute(spo_commands.FIELD_ADD, session, web_url=WEB, xml="<Field />", options="DefaultValue,Invalid")
    assert session.calls == []


def test_field_add_requires_xml(fake_session):
    with pytest.raises(UsageError, match="Required option --xml not specified"):
        _execute(spo_commands.FIELD_ADD, fake_session(), web_url=WEB)


def test_parse_field_values_pairs_and_switches():
    assert spo_commands.parse_field_values(["--Title", "New title", "--Done", "--Count=3"]) == {
        "Title": "New title",
        "Done": "true",
        "Count": "3",
    }
    with pytest.raises(UsageError, match="unexpected argument 'stray'"):
        spo_commands.parse_field_values(["stray"])


def test_listitem_set_validates_with_content_type_name(fake_session, capsys):
    session = fake_session(
        {
            ("GET", f"{LIST_URL}/contenttypes?$select=Name,Id"): {
                "value": [
                    {"Id": {"StringValue": "0x01"}, "Name": "Item"},
                    {"Id": {"StringValue": "0x0100AA"}, "Name": "Task"},
                ]
            },
            ("POST", f"{LIST_URL}/items(1)/ValidateUpdateListItem()"): {
                "value": [{"FieldName": "Title", "HasException": False, "ItemId": 1}]
            },
            ("GET", f"{LIST_URL}/items(1)"): {"Id": 1, "Title": "New title"},
        }
    )

    _execute(
        spo_commands.LISTITEM_SET,
        session,
        web_url=WEB,
        list_title="Demo",
        id="1",
        content_type="0x0100AA",
        fields={"Title": "New title"},
    )

    assert session.calls[1]["json"] == {
        "formValues": [
            {"FieldName": "Title", "FieldValue": "New title"},
            {"FieldName": "ContentType", "FieldValue": "Task"},
        ]
    }
    assert json.loads(capsys.readouterr().out) == {"Id": 1, "Title": "New title"}


def test_listitem_set_unknown_content_type(fake_session):
    session = fake_session({("GET", f"{LIST_URL}/contenttypes?$select=Name,Id"): {"value": []}})

    with pytest.raises(OpError, match="Specified content type 'Missing' doesn't exist on the target list"):
        _execute(spo_commands.LISTITEM_SET, session, web_url=WEB, list_title="Demo", id="1", content_type="Missing")
    assert len(session.calls) == 1


def test_listitem_set_reports_failed_update(fake_session):
    session = fake_session({("POST", f"{LIST_URL}/items(1)/ValidateUpdateListItem()"): {"value": [{"ItemId": 0}]}})

    with pytest.raises(OpError, match="Item didn't update successfully"):
        _execute(spo_commands.LISTITEM_SET, session, web_url=WEB, list_title="Demo", id="1", fields={"Title": "x"})


def test_listitem_set_system_update_goes_through_csom(fake_session):
    identity_response = [
        {"SchemaVersion": "15.0.0.0", "LibraryVersion": "16.0.7331.1206", "ErrorInfo": None},
        1,
        {"_ObjectType_": "SP.Web", "_ObjectIdentity_": WEB_IDENTITY, "ServerRelativeUrl": "/sites/hr"},
    ]
    update_response = [{"SchemaVersion": "15.0.0.0", "LibraryVersion": "16.0.7331.1206", "ErrorInfo": None}]
    session = fake_session(
        {
            ("GET", f"{LIST_URL}/id"): {"value": LIST_ID},
            ("POST", f"{WEB}/_api/contextinfo"): {"FormDigestValue": "digest"},
            ("POST", WEB_PROCESS_QUERY): iter([identity_response, update_response]),
            ("GET", f"{LIST_URL}/items(3)"): {"Id": 3},
        }
    )

    _execute(
        spo_commands.LISTITEM_SET,
        session,
        web_url=WEB,
        list_title="Demo",
        id="3",
        system_update=True,
        fields={"Title": "A & B"},
    )

    assert [c["url"] for c in session.calls] == [
        f"{LIST_URL}/id",
        f"{WEB}/_api/contextinfo",
        WEB_PROCESS_QUERY,
        WEB_PROCESS_QUERY,
        f"{LIST_URL}/items(3)",
    ]
    assert session.calls[2]["data"] == spo_commands.web_identity_body()
    body = session.calls[3]["data"]
    assert body == spo_commands.system_update_body(WEB_IDENTITY, LIST_ID, 3, {"Title": "A & B"})
    assert '<Parameter Type="String">A &amp; B</Parameter>' in body
    assert '<Method Name="SystemUpdate" Id="2" ObjectPathId="147" />' in body
    assert f':list:{LIST_ID}:item:3,1" />' in body


def test_listitem_set_system_update_surfaces_csom_error(fake_session):
    identity_response = [{"ErrorInfo": None}, {"_ObjectIdentity_": WEB_IDENTITY}]
    failure = [{"ErrorInfo": {"ErrorMessage": "Column 'Nope' does not exist."}}]
    session = fake_session(
        {
            ("GET", f"{LIST_URL}/id"): {"value": LIST_ID},
            ("POST", f"{WEB}/_api/contextinfo"): {"FormDigestValue": "digest"},
            ("POST", WEB_PROCESS_QUERY): iter([identity_response, failure]),
        }
    )

    with pytest.raises(OpError, match="Error occurred in systemUpdate operation - Column 'Nope' does not exist."):
        _execute(
            spo_commands.LISTITEM_SET,
            session,
            web_url=WEB,
            list_title="Demo",
            id="3",
            system_update=True,
            fields={"Nope": "x"},
        )


def test_listitem_set_option_sets_and_guid(fake_session):
    with pytest.raises(UsageError, match="Specify only one of: --list-id, --list-title"):
        _execute(spo_commands.LISTITEM_SET, fake_session(), web_url=WEB, list_id=LIST_ID, list_title="Demo", id="1")
    with pytest.raises(UsageError, match="foo in option list-id is not a valid GUID"):
        _execute(spo_commands.LISTITEM_SET, fake_session(), web_url=WEB, list_id="foo", id="1")


PAGE = f"{WEB}/_api/sitepages/pages/GetByUrl('sitepages/page.aspx')"
CANVAS = "<div>just some test content</div>"
HEADER_PREFIX = (
    '[{"id":"cbe7b0a9-3504-44dd-a3a3-0e5cacd07788","instanceId":"cbe7b0a9-3504-44dd-a3a3-0e5cacd07788",'
    '"title":"Title Region","description":"Title Region Description",'
)


def _page_session(fake_session, *, checked_out=True, page_data=None, extra=None):
    responses = {
        ("GET", f"{PAGE}?$select=IsPageCheckedOutToCurrentUser,Title"): {
            "IsPageCheckedOutToCurrentUser": checked_out,
            "Title": "Page",
        },
        ("GET", f"{PAGE}?$expand=ListItemAllFields"): page_data,
        ("POST", f"{PAGE}/checkoutpage"): page_data,
        ("POST", f"{PAGE}/SavePageAsDraft"): None,
    }
    responses.update(extra or {})
    return fake_session(responses)


def test_page_header_set_default_header(fake_session):
    session = _page_session(fake_session, page_data={"CanvasContent1": CANVAS})

    _execute(spo_commands.PAGE_HEADER_SET, session, web_url=WEB, page_name="page.aspx")

    assert session.calls[-1]["url"] == f"{PAGE}/SavePageAsDraft"
    assert session.calls[-1]["json"] == {
        "LayoutWebpartsContent": HEADER_PREFIX
        + '"serverProcessedContent":{"htmlStrings":{},"searchablePlainTexts":{},"imageSources":{},"links":{}},'
        '"dataVersion":"1.4","properties":{"imageSourceType":4,"layoutType":"FullWidthImage","textAlignment":"Left",'
        '"showTopicHeader":false,"showPublishDate":false,"topicHeader":""}}]',
        "CanvasContent1": CANVAS,
    }


def test_page_header_set_checks_out_page_and_appends_extension(fake_session):
    session = _page_session(fake_session, checked_out=False, page_data={"CanvasContent1": CANVAS})

    _execute(spo_commands.PAGE_HEADER_SET, session, web_url=WEB, page_name="page")

    assert [c["url"] for c in session.calls] == [
        f"{PAGE}?$select=IsPageCheckedOutToCurrentUser,Title",
        f"{PAGE}/checkoutpage",
        f"{PAGE}/SavePageAsDraft",
    ]


def test_page_header_set_without_canvas_sends_title(fake_session):
    session = _page_session(fake_session, page_data=None)

    _execute(spo_commands.PAGE_HEADER_SET, session, web_url=WEB, page_name="page.aspx", type="None")

    body = session.calls[-1]["json"]
    assert body["Title"] == "Page"
    assert body["AuthorByline"] == []
    assert '"properties":{"title":"Page","imageSourceType":4,"layoutType":"NoImage"' in body["LayoutWebpartsContent"]


def test_page_header_set_custom_image_resolves_ids(fake_session):
    image_url = "/sites/hr/siteassets/hero.jpg"
    session = _page_session(
        fake_session,
        page_data={"CanvasContent1": CANVAS},
        extra={
            ("GET", f"{WEB}/_api/site?$select=Id"): {"Id": "c7678ab2-c9dc-454b-b2ee-7fcffb983d4e"},
            ("GET", f"{WEB}/_api/web?$select=Id"): {"Id": "0df4d2d2-5ecf-45e9-94f5-c638106bfc65"},
            (
                "GET",
                f"{WEB}/_api/web/getfilebyserverrelativeurl('%2Fsites%2Fhr%2Fsiteassets%2Fhero.jpg')"
                "?$select=ListId,UniqueId",
            ): {
                "ListId": "e1557527-d333-49f2-9d60-ea8a3003fda8",
                "UniqueId": "102f496d-23a2-415f-803a-232b8a6c7613",
            },
        },
    )

    _execute(
        spo_commands.PAGE_HEADER_SET,
        session,
        web_url=WEB,
        page_name="page.aspx",
        type="Custom",
        image_url=image_url,
        translate_x="42.3837520042758",
        translate_y="56.4285714285714",
    )

    assert session.calls[-1]["json"]["LayoutWebpartsContent"] == (
        HEADER_PREFIX + '"serverProcessedContent":{"htmlStrings":{},"searchablePlainTexts":{},'
        '"imageSources":{"imageSource":"/sites/hr/siteassets/hero.jpg"},"links":{},'
        '"customMetadata":{"imageSource":{"siteId":"c7678ab2-c9dc-454b-b2ee-7fcffb983d4e",'
        '"webId":"0df4d2d2-5ecf-45e9-94f5-c638106bfc65","listId":"e1557527-d333-49f2-9d60-ea8a3003fda8",'
        '"uniqueId":"102f496d-23a2-415f-803a-232b8a6c7613"}}},"dataVersion":"1.4",'
        '"properties":{"imageSourceType":2,"layoutType":"FullWidthImage","textAlignment":"Left",'
        '"showTopicHeader":false,"showPublishDate":false,"topicHeader":"","authors":[],"altText":"",'
        '"webId":"0df4d2d2-5ecf-45e9-94f5-c638106bfc65","siteId":"c7678ab2-c9dc-454b-b2ee-7fcffb983d4e",'
        '"listId":"e1557527-d333-49f2-9d60-ea8a3003fda8","uniqueId":"102f496d-23a2-415f-803a-232b8a6c7613",'
        '"translateX":42.3837520042758,"translateY":56.4285714285714}}]'
    )


def test_page_header_set_custom_without_image_sets_authors(fake_session):
    session = _page_session(fake_session, page_data={"CanvasContent1": CANVAS})

    _execute(
        spo_commands.PAGE_HEADER_SET,
        session,
        web_url=WEB,
        page_name="page.aspx",
        type="Custom",
        authors="Joe Doe, Jane Doe",
    )

    body = session.calls[-1]["json"]
    assert body["AuthorByline"] == ["Joe Doe", "Jane Doe"]
    assert '"customMetadata":{"imageSource":{"siteId":"","webId":"","listId":"","uniqueId":""}}' in (
        body["LayoutWebpartsContent"]
    )
    assert '"translateX":0,"translateY":0' in body["LayoutWebpartsContent"]


def test_page_header_set_topic_header_and_alignment(fake_session):
    session = _page_session(fake_session, page_data={"CanvasContent1": CANVAS})

    _execute(
        spo_commands.PAGE_HEADER_SET,
        session,
        web_url=WEB,
        page_name="page.aspx",
        text_alignment="Center",
        show_topic_header=True,
        topic_header="Team Awesome",
    )

    content = session.calls[-1]["json"]["LayoutWebpartsContent"]
    assert '"textAlignment":"Center","showTopicHeader":true,"showPublishDate":false,"topicHeader":"Team Awesome"' in content


def test_page_header_set_rejects_invalid_values(fake_session):
    with pytest.raises(UsageError, match="invalid is not a valid type value. Allowed values None\\|Default\\|Custom."):
        _execute(spo_commands.PAGE_HEADER_SET, fake_session(), web_url=WEB, page_name="page", type="invalid")
    with pytest.raises(UsageError, match="invalid is not a valid text-alignment value. Allowed values Left\\|Center."):
        _execute(spo_commands.PAGE_HEADER_SET, fake_session(), web_url=WEB, page_name="page", text_alignment="invalid")
    with pytest.raises(UsageError, match="abc is not a valid number"):
        _execute(spo_commands.PAGE_HEADER_SET, fake_session(), web_url=WEB, page_name="page", translate_x="abc")

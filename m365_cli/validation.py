from __future__ import annotations

import re
from urllib.parse import urlparse

_GUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_TEAMS_CHANNEL_ID_RE = re.compile(r"^19:[0-9a-zA-Z\-_]+@thread\.(skype|tacv2)$", re.IGNORECASE)


def is_valid_guid(val: str | None) -> bool:
    return bool(val) and bool(_GUID_RE.match(str(val)))


def is_valid_teams_channel_id(val: str | None) -> bool:
    return bool(val) and bool(_TEAMS_CHANNEL_ID_RE.match(str(val)))


def is_valid_boolean(val: str | None) -> bool:
    return str(val or "").strip().lower() in {"true", "false"}


def is_valid_integer(val: str | None) -> bool:
    try:
        int(str(val).strip())
    except (TypeError, ValueError):
        return False
    return True


def is_valid_sharepoint_url(url: str | None) -> bool | str:
    """Return ``True`` or the user-facing reason the URL is rejected."""
    if not url:
        return "SharePoint Online site URL is required"
    parsed = urlparse(str(url))
    host = (parsed.hostname or "").lower()
    if parsed.scheme != "https" or not host.endswith(".sharepoint.com"):
        return f"'{url}' is not a valid SharePoint Online site URL"
    return True


def tenant_admin_url(site_url: str) -> str:
    """Derive ``https://contoso-admin.sharepoint.com`` from any tenant URL."""
    parsed = urlparse(site_url)
    host = (parsed.hostname or "").lower()
    tenant = host.split(".", 1)[0]
    if tenant.endswith("-admin"):
        return f"https://{host}"
    if tenant.endswith("-my"):
        tenant = tenant[: -len("-my")]
    return f"https://{tenant}-admin.sharepoint.com"


def server_relative_path(web_url: str, path: str) -> str:
    """Turn a site-relative or absolute list URL into a server-relative one."""
    p = str(path or "").strip()
    if p.lower().startswith("https://"):
        p = urlparse(p).path
    if p.startswith("/"):
        return p.rstrip("/") or "/"
    web_path = urlparse(web_url).path.rstrip("/")
    return f"{web_path}/{p}".rstrip("/")

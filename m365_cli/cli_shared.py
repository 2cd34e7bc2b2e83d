from __future__ import annotations

import base64
import json
import os
import sys
from dataclasses import dataclass
from typing import Any, Iterable


class M365CliError(Exception):
    pass


class UsageError(M365CliError):
    pass


class OpError(M365CliError):
    pass


class ResolutionError(OpError):
    pass


M365_ACCESS_TOKEN = "M365_ACCESS_TOKEN"
M365_SPO_ACCESS_TOKEN = "M365_SPO_ACCESS_TOKEN"
M365_GRAPH_URL = "M365_GRAPH_URL"
M365_OUTPUT = "M365_OUTPUT"
M365_HTTP_TIMEOUT = "M365_HTTP_TIMEOUT"

DEFAULT_GRAPH_URL = "https://graph.microsoft.com"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
OUTPUT_MODES = ("json", "text")


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


@dataclass(frozen=True)
class GlobalOpts:
    debug: bool = False
    verbose: bool = False
    output: str = "json"
    pretty: bool = True
    quiet: bool = False
    access_token: str = ""


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _resolve_output_mode(raw: str | None) -> str:
    mode = (raw or _env_or_none(M365_OUTPUT) or "json").strip().lower()
    if mode not in OUTPUT_MODES:
        raise UsageError(f"invalid output mode {mode!r} (expected one of: {', '.join(OUTPUT_MODES)})")
    return mode


def _http_timeout_seconds() -> int:
    raw = _env_or_none(M365_HTTP_TIMEOUT)
    if not raw:
        return DEFAULT_HTTP_TIMEOUT_SECONDS
    try:
        val = int(raw)
    except ValueError as e:
        raise UsageError(f"invalid {M365_HTTP_TIMEOUT}: {raw!r} is not an integer") from e
    if val <= 0:
        raise UsageError(f"invalid {M365_HTTP_TIMEOUT}: must be positive")
    return val


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True) + "\n")


def _text_cell(val: Any) -> str:
    if val is None:
        return ""
    if isinstance(val, (dict, list)):
        return json.dumps(val, separators=(",", ":"), sort_keys=True)
    return str(val).replace("\n", " ")


def _print_table(*, headers: list[str], rows: list[list[str]], empty_message: str) -> None:
    if not rows:
        sys.stdout.write(f"{empty_message}\n")
        return
    widths: list[int] = [len(h) for h in headers]
    for row in rows:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], len(val))
    header_line = "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    divider_line = "  ".join("-" * widths[i] for i in range(len(headers)))
    sys.stdout.write(header_line.rstrip() + "\n")
    sys.stdout.write(divider_line + "\n")
    for row in rows:
        sys.stdout.write("  ".join(row[i].ljust(widths[i]) for i in range(len(headers))).rstrip() + "\n")


def _print_text(obj: Any, *, properties: Iterable[str] | None = None) -> None:
    """Render a payload as an aligned table.

    Lists of objects become one row per item; a single object becomes a
    two-column property/value listing. When ``properties`` is given only
    those keys are shown.
    """
    props = list(properties or [])
    if isinstance(obj, list):
        items = [o for o in obj if isinstance(o, dict)]
        if not items:
            for o in obj:
                sys.stdout.write(_text_cell(o) + "\n")
            if not obj:
                sys.stdout.write("No items.\n")
            return
        headers = props or list(items[0].keys())
        rows = [[_text_cell(item.get(h)) for h in headers] for item in items]
        _print_table(headers=headers, rows=rows, empty_message="No items.")
        return
    if isinstance(obj, dict):
        keys = props or list(obj.keys())
        rows = [[k, _text_cell(obj.get(k))] for k in keys]
        _print_table(headers=["property", "value"], rows=rows, empty_message="No properties.")
        return
    sys.stdout.write(_text_cell(obj) + "\n")


def _jwt_payload(token: str) -> dict[str, Any]:
    parts = (token or "").split(".")
    if len(parts) < 2:
        raise OpError("invalid JWT: expected at least 2 dot-separated parts")
    payload_b64 = parts[1]
    payload_b64 += "=" * (-len(payload_b64) % 4)
    try:
        raw = base64.urlsafe_b64decode(payload_b64.encode("utf-8"))
        val = json.loads(raw.decode("utf-8"))
    except Exception as e:
        raise OpError(f"invalid JWT payload: {e}") from e
    if not isinstance(val, dict):
        raise OpError("invalid JWT payload: expected JSON object")
    return val


def _parse_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    seen: set[str] = set()
    uniq: list[str] = []
    for part in raw.split(","):
        v = part.strip()
        if not v or v in seen:
            continue
        seen.add(v)
        uniq.append(v)
    return uniq

from __future__ import annotations

import sys

from .apps.m365_cli_app import app, main

__all__ = ["app", "main"]


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))

"""Administrative CLI for Microsoft 365 workloads.

Commands for Teams, Azure AD groups, Planner and SharePoint Online share one
execution path: declared options are validated locally, destructive changes
are confirmed, and only then are Graph or SharePoint called.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

"""
Gmail Package - Mail fetching for InboxZero

Usage:
    from inboxzero.gmail import GoogleClient, fetch_emails

    client = GoogleClient()
    emails = fetch_emails(client, max_results=20)
"""

from .client import SCOPES, GoogleClient
from .messages import fetch_emails, parse_message

__all__ = [
    "SCOPES",
    "GoogleClient",
    "fetch_emails",
    "parse_message",
]

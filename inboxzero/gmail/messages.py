"""
Gmail Messages - fetch inbox messages and normalize them into Email records
"""

import base64
import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Tuple

from bs4 import BeautifulSoup
from googleapiclient.errors import HttpError

from inboxzero.models import Email
from inboxzero.resilience import APIRateLimiters, RateLimiter

from .client import GoogleClient

logger = logging.getLogger(__name__)

DEFAULT_QUERY = "is:unread OR in:inbox"

LINKEDIN_PROFILE_PATTERN = re.compile(r"https?://(?:www\.)?linkedin\.com/in/[\w-]+", re.IGNORECASE)
SENDER_PATTERN = re.compile(r"^(.+?)\s*<(.+)>$")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_headers(message: dict) -> Dict[str, str]:
    """Extract common headers from a Gmail message."""
    headers = {}
    for header in message.get("payload", {}).get("headers", []):
        name = header.get("name", "").lower()
        if name in ("subject", "from", "date"):
            headers[name] = header.get("value", "")
    return headers


def _decode(data: str) -> str:
    return base64.urlsafe_b64decode(data.encode("ascii")).decode("utf-8", errors="replace")


def _html_to_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["style", "script"]):
        tag.decompose()
    return soup.get_text("\n", strip=True)


def _find_part(payload: dict, mime_type: str) -> Optional[str]:
    """Depth-first search for the first part of ``mime_type`` with data."""
    if payload.get("mimeType") == mime_type and payload.get("body", {}).get("data"):
        return _decode(payload["body"]["data"])
    for part in payload.get("parts", []):
        found = _find_part(part, mime_type)
        if found:
            return found
    return None


def get_plain_body(payload: dict) -> str:
    """
    Extract a plain-text body from a Gmail message payload.

    Prefers a text/plain part; falls back to the first text/html part
    converted to text.
    """
    text = _find_part(payload, "text/plain")
    if text is not None:
        return text

    html = _find_part(payload, "text/html")
    if html is not None:
        return _html_to_text(html)

    # Single-part message without a recognized mime type
    data = payload.get("body", {}).get("data")
    return _decode(data) if data else ""


def split_sender(sender_raw: str) -> Tuple[str, str]:
    """
    Split a From header into (address, display name).

    '"Dana Smith" <dana@stripe.com>' -> ("dana@stripe.com", "Dana Smith")
    'dana@stripe.com' -> ("dana@stripe.com", "")
    """
    sender_raw = sender_raw.strip()
    match = SENDER_PATTERN.match(sender_raw)
    if match:
        return match.group(2).strip(), match.group(1).replace('"', "").strip()
    return sender_raw, ""


def _received_at(message: dict, date_header: str) -> datetime:
    if date_header:
        try:
            return parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            logger.debug(f"Unparseable Date header '{date_header}' on {message.get('id')}")

    internal = message.get("internalDate")
    if internal:
        return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)
    return datetime.now(timezone.utc)


def is_linkedin_message(sender_raw: str, subject: str, body: str) -> bool:
    return (
        "linkedin.com" in sender_raw
        or "via LinkedIn" in sender_raw
        or "linkedin.com" in body
        or "linkedin" in subject.lower()
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_message(message: dict) -> Email:
    """
    Convert a Gmail API message (format=full) into an Email.

    Args:
        message: Message resource from users.messages.get

    Returns:
        Email with plain-text body, LinkedIn detection and profile URL
    """
    headers = _get_headers(message)
    sender_raw = headers.get("from", "")
    subject = headers.get("subject", "")
    body = get_plain_body(message.get("payload", {}))

    sender, sender_name = split_sender(sender_raw)
    linkedin = is_linkedin_message(sender_raw, subject, body)

    profile_url = None
    if linkedin:
        match = LINKEDIN_PROFILE_PATTERN.search(body)
        if match:
            profile_url = match.group(0)

    return Email(
        id=message["id"],
        thread_id=message.get("threadId", ""),
        sender=sender,
        sender_name=sender_name,
        subject=subject,
        body=body,
        received_at=_received_at(message, headers.get("date", "")),
        snippet=message.get("snippet", ""),
        is_linkedin_notification=linkedin,
        linkedin_profile_url=profile_url,
    )


def fetch_emails(
    client: GoogleClient,
    max_results: int = 50,
    query: str = DEFAULT_QUERY,
    rate_limiter: Optional[RateLimiter] = APIRateLimiters.gmail,
) -> List[Email]:
    """
    Fetch and parse inbox messages.

    Messages that fail to download are logged and skipped; a failure of
    the list call itself propagates.

    Args:
        client: Authenticated GoogleClient
        max_results: Maximum number of messages to list
        query: Gmail search query
        rate_limiter: Acquired before each Gmail API call (None disables)

    Returns:
        Emails in the order Gmail returned them (newest first)
    """
    service = client.gmail()
    messages = service.users().messages()
    if rate_limiter:
        rate_limiter.acquire()
    listing = messages.list(userId="me", q=query, maxResults=max_results).execute()

    emails = []
    for ref in listing.get("messages", []):
        msg_id = ref.get("id")
        if not msg_id:
            continue
        if rate_limiter:
            rate_limiter.acquire()
        try:
            message = messages.get(userId="me", id=msg_id, format="full").execute()
        except HttpError as e:
            logger.warning(f"Skipping message {msg_id}: {e}")
            continue
        emails.append(parse_message(message))

    logger.info(f"Fetched {len(emails)} message(s) for query '{query}'")
    return emails

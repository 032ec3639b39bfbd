"""
Tests for Gmail message parsing and fetching.

Gmail API resources are built by hand; the service is a Mock.
"""

import base64
from datetime import datetime, timezone
from unittest.mock import Mock

import httplib2
from googleapiclient.errors import HttpError

from inboxzero.gmail import fetch_emails, parse_message
from inboxzero.gmail.messages import get_plain_body, split_sender


def _b64(text):
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def _message(
    msg_id="m1",
    sender='"Dana Smith" <dana@stripe.com>',
    subject="Hello",
    parts=None,
    date="Sat, 17 Oct 2026 09:30:00 +0000",
    **extra,
):
    headers = [{"name": "From", "value": sender}, {"name": "Subject", "value": subject}]
    if date:
        headers.append({"name": "Date", "value": date})
    message = {
        "id": msg_id,
        "threadId": f"t-{msg_id}",
        "snippet": "snippet",
        "payload": {
            "mimeType": "multipart/alternative",
            "headers": headers,
            "parts": parts
            if parts is not None
            else [{"mimeType": "text/plain", "body": {"data": _b64("Plain body")}}],
        },
    }
    message.update(extra)
    return message


def test_parse_message_basic_fields():
    email = parse_message(_message())

    assert email.id == "m1"
    assert email.thread_id == "t-m1"
    assert email.sender == "dana@stripe.com"
    assert email.sender_name == "Dana Smith"
    assert email.subject == "Hello"
    assert email.body == "Plain body"
    assert email.received_at == datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
    assert email.is_linkedin_notification is False
    assert email.linkedin_profile_url is None


def test_plain_text_preferred_over_html():
    payload = {
        "mimeType": "multipart/alternative",
        "parts": [
            {"mimeType": "text/html", "body": {"data": _b64("<p>HTML body</p>")}},
            {"mimeType": "text/plain", "body": {"data": _b64("Plain body")}},
        ],
    }

    assert get_plain_body(payload) == "Plain body"


def test_html_only_body_is_converted():
    html = "<html><style>p {color: red}</style><body><p>Hi Dana,</p><p>Let's talk</p></body></html>"
    payload = {
        "mimeType": "multipart/mixed",
        "parts": [
            {
                "mimeType": "multipart/alternative",
                "parts": [{"mimeType": "text/html", "body": {"data": _b64(html)}}],
            }
        ],
    }

    assert get_plain_body(payload) == "Hi Dana,\nLet's talk"


def test_single_part_body():
    assert get_plain_body({"mimeType": "text/plain", "body": {"data": _b64("Just text")}}) == (
        "Just text"
    )
    assert get_plain_body({"mimeType": "text/plain", "body": {"size": 0}}) == ""


def test_split_sender():
    assert split_sender('"Dana Smith" <dana@stripe.com>') == ("dana@stripe.com", "Dana Smith")
    assert split_sender("Dana <dana@stripe.com>") == ("dana@stripe.com", "Dana")
    assert split_sender("dana@stripe.com") == ("dana@stripe.com", "")


def test_linkedin_message_with_profile_url():
    body = "Priya sent you a message.\nView profile: https://www.linkedin.com/in/priya-patel-42?trk=x"
    message = _message(
        sender="Priya Patel via LinkedIn <inmail-hit-reply@linkedin.com>",
        parts=[{"mimeType": "text/plain", "body": {"data": _b64(body)}}],
    )

    email = parse_message(message)

    assert email.is_linkedin_notification is True
    assert email.sender_name == "Priya Patel via LinkedIn"
    assert email.linkedin_profile_url == "https://www.linkedin.com/in/priya-patel-42"


def test_received_at_falls_back_to_internal_date():
    message = _message(date=None, internalDate="1792229400000")

    email = parse_message(message)

    assert email.received_at == datetime.fromtimestamp(1792229400, tz=timezone.utc)


def _service(listing, messages):
    client = Mock()
    api = client.gmail.return_value.users.return_value.messages.return_value
    api.list.return_value.execute.return_value = listing
    api.get.return_value.execute.side_effect = messages
    return client, api


def test_fetch_emails_skips_failed_downloads():
    not_found = HttpError(httplib2.Response({"status": "404"}), b"Not Found")
    client, api = _service(
        {"messages": [{"id": "m1"}, {"id": "m2"}, {"id": "m3"}]},
        [_message("m1"), not_found, _message("m3")],
    )

    emails = fetch_emails(client, max_results=5, query="in:inbox", rate_limiter=None)

    assert [e.id for e in emails] == ["m1", "m3"]
    api.list.assert_called_once_with(userId="me", q="in:inbox", maxResults=5)


def test_fetch_emails_empty_inbox():
    client, _ = _service({"resultSizeEstimate": 0}, [])

    assert fetch_emails(client, rate_limiter=None) == []

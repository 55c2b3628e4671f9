"""
Gmail REST client.

Messages are sent as base64url-encoded RFC 2822 text. Listing fetches
message ids first, then each message's metadata headers.
"""

from __future__ import annotations

import base64
from email.message import EmailMessage
from typing import Any

from src.integrations.base import HTTPCollaborator


def encode_message(to: str, subject: str, body: str) -> str:
    message = EmailMessage()
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    return base64.urlsafe_b64encode(message.as_bytes()).decode().rstrip("=")


class GmailClient(HTTPCollaborator):
    provider = "gmail"
    base_url = "https://gmail.googleapis.com/gmail/v1/users/me"

    async def send_email(self, to: str, subject: str, body: str) -> dict[str, Any]:
        response = await self._request("POST", "/messages/send", json={"raw": encode_message(to, subject, body)})
        return {"success": True, "message_id": response.json().get("id")}

    async def list_emails(self, query: str = "", max_results: int = 10) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"maxResults": max_results}
        if query:
            params["q"] = query
        response = await self._request("GET", "/messages", params=params)

        emails: list[dict[str, Any]] = []
        for ref in response.json().get("messages") or []:
            detail = await self._request(
                "GET",
                f"/messages/{ref['id']}",
                params={"format": "metadata", "metadataHeaders": ["From", "Subject", "Date"]},
            )
            payload = detail.json()
            headers = {h["name"]: h["value"] for h in (payload.get("payload") or {}).get("headers", [])}
            emails.append({
                "id": ref["id"],
                "from": headers.get("From", ""),
                "subject": headers.get("Subject", ""),
                "date": headers.get("Date", ""),
                "snippet": payload.get("snippet", ""),
            })
        return emails

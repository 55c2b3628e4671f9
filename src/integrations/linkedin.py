"""LinkedIn UGC post client."""

from __future__ import annotations

from typing import Any

import httpx

from src.integrations.base import HTTPCollaborator
from src.lib.exceptions import NotConnectedError

VISIBILITIES = ("PUBLIC", "CONNECTIONS")


class LinkedInClient(HTTPCollaborator):
    provider = "linkedin"
    base_url = "https://api.linkedin.com/v2"

    def __init__(
        self,
        token: str | None,
        person_urn: str | None,
        http: httpx.AsyncClient | None = None,
        timeout: float = 20.0,
    ) -> None:
        super().__init__(token, http=http, timeout=timeout)
        self._person_urn = person_urn

    async def create_post(
        self, content: str, visibility: str = "PUBLIC", image_url: str | None = None
    ) -> dict[str, Any]:
        if not self._person_urn:
            raise NotConnectedError("linkedin profile is not linked", provider=self.provider)

        share: dict[str, Any] = {
            "shareCommentary": {"text": content},
            "shareMediaCategory": "NONE",
        }
        if image_url:
            share["shareMediaCategory"] = "ARTICLE"
            share["media"] = [{"status": "READY", "originalUrl": image_url}]

        body = {
            "author": self._person_urn,
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share},
            "visibility": {
                "com.linkedin.ugc.MemberNetworkVisibility": visibility if visibility in VISIBILITIES else "PUBLIC"
            },
        }
        response = await self._request(
            "POST", "/ugcPosts", json=body, headers={"X-Restli-Protocol-Version": "2.0.0"}
        )
        post_id = response.headers.get("x-restli-id")
        if not post_id and response.content:
            post_id = response.json().get("id")
        return {"success": True, "post_id": post_id}

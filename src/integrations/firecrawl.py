"""Web search and page scraping through the Firecrawl API."""

from __future__ import annotations

from typing import Any

from src.integrations.base import HTTPCollaborator

MAX_CONTENT_CHARS = 8000


class FirecrawlClient(HTTPCollaborator):
    provider = "firecrawl"
    base_url = "https://api.firecrawl.dev/v1"

    async def search(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        response = await self._request("POST", "/search", json={"query": query, "limit": limit})
        data = response.json().get("data") or []
        return [
            {
                "title": item.get("title", ""),
                "url": item.get("url", ""),
                "description": item.get("description", ""),
            }
            for item in data[:limit]
        ]

    async def scrape(self, url: str) -> dict[str, Any]:
        response = await self._request("POST", "/scrape", json={"url": url, "formats": ["markdown"]})
        data = response.json().get("data") or {}
        metadata = data.get("metadata") or {}
        content = data.get("markdown") or ""
        return {
            "title": metadata.get("title", ""),
            "url": url,
            "content": content[:MAX_CONTENT_CHARS],
            "truncated": len(content) > MAX_CONTENT_CHARS,
        }

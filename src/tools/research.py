"""Research tools: web search, page scraping and notes."""

from __future__ import annotations

from typing import Any

from pydantic import Field, HttpUrl

from src.lib.errors import NOT_CONNECTED, build_tool_failure, build_tool_success
from src.models import Note
from src.tools.registry import ToolArgs, ToolContext, ToolSpec


class SearchWebArgs(ToolArgs):
    query: str = Field(min_length=1)
    limit: int = Field(5, ge=1, le=10)


class ScrapeUrlArgs(ToolArgs):
    url: HttpUrl


class SaveNoteArgs(ToolArgs):
    content: str = Field(min_length=1)
    title: str | None = None
    tags: list[str] = Field(default_factory=list)


async def search_web(ctx: ToolContext, user_id: int, args: SearchWebArgs) -> dict[str, Any]:
    if ctx.search is None:
        return build_tool_failure(NOT_CONNECTED, "Web search is not configured")
    results = await ctx.search.search(args.query, limit=args.limit)
    return build_tool_success(query=args.query, results=results)


async def scrape_url(ctx: ToolContext, user_id: int, args: ScrapeUrlArgs) -> dict[str, Any]:
    if ctx.search is None:
        return build_tool_failure(NOT_CONNECTED, "Web scraping is not configured")
    page = await ctx.search.scrape(str(args.url))
    return build_tool_success(**page)


async def save_note(ctx: ToolContext, user_id: int, args: SaveNoteArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        note = Note(user_id=user_id, title=args.title, content=args.content, tags=list(args.tags))
        session.add(note)
        await session.commit()
        return build_tool_success(note_id=note.id, title=note.title)


TOOLS = [
    ToolSpec("search_web", "Search the web and return titles, URLs and snippets.", SearchWebArgs, search_web),
    ToolSpec("scrape_url", "Fetch a web page and return its main content as markdown.", ScrapeUrlArgs, scrape_url),
    ToolSpec("save_note", "Save an idea, snippet or research finding as a note.", SaveNoteArgs, save_note),
]

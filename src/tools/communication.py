"""
Outbound communication tools: email, social posts and spreadsheets.

Social posting goes through the injected PostRateLimiter before the
provider is called; an exhausted budget is a RATE_LIMITED envelope.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import EmailStr, Field, model_validator

from src.lib.errors import NOT_CONNECTED, RATE_LIMITED, build_tool_failure, build_tool_success
from src.tools.registry import ToolArgs, ToolContext, ToolSpec


class SendEmailArgs(ToolArgs):
    to: EmailStr
    subject: str = Field(min_length=1)
    body: str = Field(min_length=1)


class ReadEmailsArgs(ToolArgs):
    query: str = Field("", description='Gmail search syntax, e.g. "is:unread from:boss"')
    max_results: int = Field(10, ge=1, le=50)


class CreateSocialPostArgs(ToolArgs):
    content: str = Field(min_length=1, max_length=3000)
    visibility: Literal["PUBLIC", "CONNECTIONS"] = "PUBLIC"
    image_url: str | None = None


class ManageSpreadsheetArgs(ToolArgs):
    action: Literal["read", "write", "append", "clear", "delete_rows"]
    spreadsheet_id: str = Field(min_length=1)
    range: str | None = Field(None, description='A1 notation, e.g. "Sheet1!A1:C10"')
    values: list[list[Any]] | None = None
    sheet_id: int | None = None
    start_index: int | None = Field(None, ge=0)
    end_index: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def _check_action_fields(self) -> ManageSpreadsheetArgs:
        if self.action == "delete_rows":
            if self.sheet_id is None or self.start_index is None or self.end_index is None:
                raise ValueError("delete_rows needs sheet_id, start_index and end_index")
            if self.end_index <= self.start_index:
                raise ValueError("end_index must be greater than start_index")
            return self
        if not self.range:
            raise ValueError(f"{self.action} needs a range")
        if self.action in ("write", "append") and not self.values:
            raise ValueError(f"{self.action} needs values")
        return self


async def send_email(ctx: ToolContext, user_id: int, args: SendEmailArgs) -> dict[str, Any]:
    if ctx.mail is None:
        return build_tool_failure(NOT_CONNECTED, "Email is not connected")
    result = await ctx.mail.send_email(str(args.to), args.subject, args.body)
    return build_tool_success(to=str(args.to), subject=args.subject, message_id=result.get("message_id"))


async def read_emails(ctx: ToolContext, user_id: int, args: ReadEmailsArgs) -> dict[str, Any]:
    if ctx.mail is None:
        return build_tool_failure(NOT_CONNECTED, "Email is not connected")
    emails = await ctx.mail.list_emails(args.query, max_results=args.max_results)
    return build_tool_success(count=len(emails), emails=emails)


async def create_social_post(ctx: ToolContext, user_id: int, args: CreateSocialPostArgs) -> dict[str, Any]:
    if ctx.social is None:
        return build_tool_failure(NOT_CONNECTED, "No social account is connected")
    if ctx.post_limiter is not None and not await ctx.post_limiter.check_and_consume(user_id):
        return build_tool_failure(RATE_LIMITED, "Daily post limit reached", remaining=0)

    result = await ctx.social.create_post(args.content, visibility=args.visibility, image_url=args.image_url)
    remaining = await ctx.post_limiter.remaining(user_id) if ctx.post_limiter is not None else None
    return build_tool_success(post_id=result.get("post_id"), visibility=args.visibility, remaining_today=remaining)


async def manage_spreadsheet(ctx: ToolContext, user_id: int, args: ManageSpreadsheetArgs) -> dict[str, Any]:
    sheets = ctx.sheets
    if sheets is None:
        return build_tool_failure(NOT_CONNECTED, "Spreadsheets are not connected")

    range_ = args.range or ""
    if args.action == "read":
        values = await sheets.read(args.spreadsheet_id, range_)
        return build_tool_success(action="read", range=range_, values=values, row_count=len(values))
    if args.action == "write":
        result = await sheets.write(args.spreadsheet_id, range_, args.values or [])
    elif args.action == "append":
        result = await sheets.append(args.spreadsheet_id, range_, args.values or [])
    elif args.action == "clear":
        result = await sheets.clear(args.spreadsheet_id, range_)
    else:
        result = await sheets.delete_rows(
            args.spreadsheet_id, args.sheet_id or 0, args.start_index or 0, args.end_index or 0
        )
    return build_tool_success(action=args.action, **result)


TOOLS = [
    ToolSpec("send_email", "Send an email from the user's connected account.", SendEmailArgs, send_email),
    ToolSpec("read_emails", "List recent emails matching a search query.", ReadEmailsArgs, read_emails),
    ToolSpec(
        "create_social_post",
        "Publish a post on the user's connected professional network. Subject to a daily limit.",
        CreateSocialPostArgs,
        create_social_post,
    ),
    ToolSpec(
        "manage_spreadsheet",
        "Read, write, append, clear or delete rows in a spreadsheet by id and A1 range.",
        ManageSpreadsheetArgs,
        manage_spreadsheet,
    ),
]

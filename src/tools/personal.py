"""Personal tracking tools: income, wellbeing and contacts."""

from __future__ import annotations

from datetime import date
from typing import Any, Literal

from pydantic import Field
from sqlalchemy import func, select

from src.lib.errors import NEEDS_AMOUNT, build_tool_failure, build_tool_success
from src.lib.timeparse import parse_amount, parse_hours
from src.models import Contact, WellbeingLog
from src.services.income_service import IncomeService
from src.tools.registry import ToolArgs, ToolContext, ToolSpec


class LogIncomeArgs(ToolArgs):
    source: str = Field(min_length=1, description="Client or income source name")
    amount: float | str = Field(description='Amount earned, e.g. 5000 or "₹5,000"')
    hours_spent: float | str | None = Field(None, description='Hours the work took, e.g. 2 or "90 minutes"')


class LogWellbeingArgs(ToolArgs):
    log_type: Literal["mood", "energy", "water", "break", "sleep"]
    value: str | None = Field(None, description='e.g. "good", "7/10", "2 glasses"')
    notes: str | None = None


class SaveContactArgs(ToolArgs):
    name: str = Field(min_length=1)
    relationship: str | None = None
    phone: str | None = None
    email: str | None = None
    birthday: date | None = Field(None, description="YYYY-MM-DD")
    notes: str | None = None


async def log_income(ctx: ToolContext, user_id: int, args: LogIncomeArgs) -> dict[str, Any]:
    amount = parse_amount(args.amount)
    if amount is None:
        return build_tool_failure(NEEDS_AMOUNT, f"Could not understand the amount {args.amount!r}")
    hours = None
    if args.hours_spent is not None:
        hours = parse_hours(args.hours_spent)
        if hours is None:
            return build_tool_failure(NEEDS_AMOUNT, f"Could not understand the hours {args.hours_spent!r}")

    async with ctx.session_factory() as session:
        source = await IncomeService(session).record_income(
            user_id, args.source, amount, hours_spent=hours, now=ctx.now()
        )
        return build_tool_success(amount=amount, **source.to_dict())


async def log_wellbeing(ctx: ToolContext, user_id: int, args: LogWellbeingArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        entry = WellbeingLog(
            user_id=user_id, log_type=args.log_type, value=args.value, notes=args.notes, logged_at=ctx.now()
        )
        session.add(entry)
        await session.commit()
        return build_tool_success(log_id=entry.id, log_type=entry.log_type, value=entry.value)


async def save_contact(ctx: ToolContext, user_id: int, args: SaveContactArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        result = await session.execute(
            select(Contact).where(Contact.user_id == user_id, func.lower(Contact.name) == args.name.lower())
        )
        contact = result.scalar_one_or_none()
        created = contact is None
        if contact is None:
            contact = Contact(user_id=user_id, name=args.name)
            session.add(contact)
        for field_name in ("relationship", "phone", "email", "birthday", "notes"):
            value = getattr(args, field_name)
            if value is not None:
                setattr(contact, field_name, value)
        await session.commit()
        return build_tool_success(contact_id=contact.id, name=contact.name, created=created)


TOOLS = [
    ToolSpec(
        "log_income",
        "Record money earned from a source, with hours spent when known. Updates the source's "
        "hourly rate and ranking. If the result has needs_amount, ask for the number.",
        LogIncomeArgs,
        log_income,
    ),
    ToolSpec("log_wellbeing", "Log mood, energy, water, breaks or sleep.", LogWellbeingArgs, log_wellbeing),
    ToolSpec(
        "save_contact",
        "Save or update a contact. Birthdays enable birthday reminders.",
        SaveContactArgs,
        save_contact,
    ),
]

"""Read-only tools: today's plan, income analysis and goal overview."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from src.lib.errors import build_tool_success
from src.services.goal_service import GoalService
from src.services.income_service import IncomeService
from src.services.profile_service import ProfileService, local_now
from src.services.task_service import TaskService
from src.tools.registry import ToolArgs, ToolContext, ToolSpec


class ListTasksArgs(ToolArgs):
    limit: int = Field(10, ge=1, le=50)


class NoArgs(ToolArgs):
    pass


async def list_tasks(ctx: ToolContext, user_id: int, args: ListTasksArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        tasks = await TaskService(session).list_prioritized(user_id, limit=args.limit)
        return build_tool_success(count=len(tasks), tasks=[task.to_dict() for task in tasks])


async def daily_plan(ctx: ToolContext, user_id: int, args: NoArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        profile = await ProfileService(session).get_or_create_profile(user_id)
        schedule = await TaskService(session).daily_schedule(user_id, local_now(profile, ctx.now()))
        return build_tool_success(**schedule.to_dict())


async def income_analysis(ctx: ToolContext, user_id: int, args: NoArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        return build_tool_success(**await IncomeService(session).money_time_analysis(user_id))


async def goals_overview(ctx: ToolContext, user_id: int, args: NoArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        service = GoalService(session)
        goals = await service.list_goals(user_id)
        summary = await service.goals_summary(user_id)
        return build_tool_success(goals=[goal.to_dict() for goal in goals], **summary)


TOOLS = [
    ToolSpec("list_tasks", "Pending tasks, highest priority score first.", ListTasksArgs, list_tasks),
    ToolSpec(
        "daily_plan",
        "Today's tasks bucketed into high/medium/low priority plus today's protected blocks.",
        NoArgs,
        daily_plan,
    ),
    ToolSpec(
        "income_analysis",
        "Income sources ranked by hourly rate with recommendations on where to spend time.",
        NoArgs,
        income_analysis,
    ),
    ToolSpec("goals_overview", "Active goals with progress and the longest current streaks.", NoArgs, goals_overview),
]

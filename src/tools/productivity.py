"""
Productivity tools: tasks, reminders, protected blocks and goals.

Time expressions ("tomorrow at 10am") are resolved in the user's
timezone; anything unparseable is a NEEDS_TIME envelope so the model can
ask the user when they meant.
"""

from __future__ import annotations

from datetime import UTC
from typing import Any, Literal

from pydantic import Field, model_validator

from src.lib.errors import NEEDS_TIME, NEEDS_VALUE, build_tool_failure, build_tool_success
from src.lib.timeparse import parse_amount, parse_time_expression
from src.models import GoalType, Reminder, ReminderStatus
from src.services.goal_service import GoalService
from src.services.profile_service import ProfileService, local_now
from src.services.protected_time import ProtectedTimeService
from src.services.task_service import TaskService
from src.tools.registry import ToolArgs, ToolContext, ToolSpec

# =============================================================================
# Argument models
# =============================================================================


class AddTaskArgs(ToolArgs):
    title: str = Field(min_length=1, description="What needs to be done")
    task_type: str | None = Field(None, description="general, job_related, study, learning, client_work, ...")
    money_impact: float | None = Field(None, ge=0, description="Money this task earns or protects")
    time_required_minutes: int | None = Field(None, gt=0, description="Estimated effort in minutes")
    deadline: str | None = Field(None, description='Due time, e.g. "tomorrow 5pm" or ISO timestamp')
    priority: int | None = Field(None, ge=1, le=5, description="User priority 1 (low) to 5 (high)")
    goal_id: int | None = None
    linked_income_source: str | None = None


class CompleteTaskArgs(ToolArgs):
    task_id: int


class SetReminderArgs(ToolArgs):
    reminder_text: str = Field(min_length=1, description='What to remind about, e.g. "call Raj"')
    time_expression: str = Field(min_length=1, description='When, e.g. "tomorrow at 10am", "in 2 hours"')
    task_id: int | None = None


class AddProtectedBlockArgs(ToolArgs):
    name: str = Field(min_length=1)
    start_time: str = Field(pattern=r"^\d{1,2}:\d{2}$", description="HH:MM, user's local time")
    end_time: str = Field(pattern=r"^\d{1,2}:\d{2}$", description="HH:MM, user's local time")
    days_of_week: list[str] | None = Field(None, description='Weekday names or ["daily"]; default Mon-Fri')
    purpose: str | None = None


class RemoveProtectedBlockArgs(ToolArgs):
    block_id: int


class CreateGoalArgs(ToolArgs):
    title: str = Field(min_length=1)
    goal_type: Literal[
        "short_term", "long_term", "daily_habit", "weekly_habit", "income", "savings", "learning"
    ] = "short_term"
    frequency: Literal["daily", "weekly", "one_time"] | None = None
    target_value: float | None = Field(None, ge=0)
    unit: str | None = None
    description: str | None = None
    parent_goal_id: int | None = None


class SetGoalParentArgs(ToolArgs):
    goal_id: int
    parent_goal_id: int | None = Field(None, description="None detaches the goal from its parent")


class LogGoalProgressArgs(ToolArgs):
    goal_id: int | None = None
    goal_title: str | None = None
    progress_value: float | str = Field(1, description="Amount of progress; 1 for a habit check-in")
    notes: str | None = None

    @model_validator(mode="after")
    def _needs_goal_reference(self) -> LogGoalProgressArgs:
        if self.goal_id is None and not self.goal_title:
            raise ValueError("goal_id or goal_title is required")
        return self


# =============================================================================
# Executors
# =============================================================================


async def add_task(ctx: ToolContext, user_id: int, args: AddTaskArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        deadline = None
        if args.deadline:
            profile = await ProfileService(session).get_or_create_profile(user_id)
            parsed = parse_time_expression(args.deadline, local_now(profile, ctx.now()))
            if parsed is None:
                return build_tool_failure(NEEDS_TIME, f"Could not understand the deadline {args.deadline!r}")
            deadline = parsed.astimezone(UTC)

        task = await TaskService(session).add_task(
            user_id,
            args.title,
            task_type=args.task_type,
            money_impact=args.money_impact,
            time_required_minutes=args.time_required_minutes,
            deadline=deadline,
            priority=args.priority,
            goal_id=args.goal_id,
            linked_income_source=args.linked_income_source,
            now=ctx.now(),
        )
        return build_tool_success(task=task.to_dict())


async def complete_task(ctx: ToolContext, user_id: int, args: CompleteTaskArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        task = await TaskService(session).complete_task(user_id, args.task_id, now=ctx.now())
        return build_tool_success(task_id=task.id, title=task.title, status=task.status)


async def set_reminder(ctx: ToolContext, user_id: int, args: SetReminderArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        profile = await ProfileService(session).get_or_create_profile(user_id)
        now_local = local_now(profile, ctx.now())
        when = parse_time_expression(args.time_expression, now_local)
        if when is None:
            return build_tool_failure(NEEDS_TIME, f"Could not understand the time {args.time_expression!r}")
        if when <= now_local:
            return build_tool_failure(NEEDS_TIME, "That time is already in the past")

        reminder = Reminder(
            user_id=user_id,
            task_id=args.task_id,
            reminder_text=args.reminder_text,
            scheduled_time=when.astimezone(UTC),
            status=ReminderStatus.PENDING.value,
            escalation_count=0,
        )
        session.add(reminder)
        await session.commit()
        return build_tool_success(
            reminder_id=reminder.id,
            reminder_text=reminder.reminder_text,
            scheduled_time=when.isoformat(),
            scheduled_time_utc=reminder.scheduled_time.isoformat(),
            timezone=profile.timezone,
        )


async def add_protected_block(ctx: ToolContext, user_id: int, args: AddProtectedBlockArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        block = await ProtectedTimeService(session).create_block(
            user_id,
            args.name,
            args.start_time,
            args.end_time,
            days_of_week=args.days_of_week,
            purpose=args.purpose,
            now=ctx.now(),
        )
        return build_tool_success(block=block.to_dict())


async def remove_protected_block(ctx: ToolContext, user_id: int, args: RemoveProtectedBlockArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        block = await ProtectedTimeService(session).deactivate_block(user_id, args.block_id, now=ctx.now())
        return build_tool_success(block_id=block.id, name=block.name, is_active=block.is_active)


async def create_goal(ctx: ToolContext, user_id: int, args: CreateGoalArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        goal = await GoalService(session).create_goal(
            user_id,
            args.title,
            goal_type=args.goal_type,
            frequency=args.frequency,
            target_value=args.target_value,
            unit=args.unit,
            description=args.description,
            parent_goal_id=args.parent_goal_id,
        )
        return build_tool_success(goal=goal.to_dict())


async def log_goal_progress(ctx: ToolContext, user_id: int, args: LogGoalProgressArgs) -> dict[str, Any]:
    value = parse_amount(args.progress_value)
    if value is None:
        return build_tool_failure(NEEDS_VALUE, f"Could not understand the progress value {args.progress_value!r}")

    async with ctx.session_factory() as session:
        service = GoalService(session)
        if args.goal_id is not None:
            goal_id = args.goal_id
        else:
            goal_id = (await service.find_by_title(user_id, args.goal_title or "")).id
        result = await service.log_progress(user_id, goal_id, value, notes=args.notes, now=ctx.now())
        return build_tool_success(**result.to_dict())


async def set_goal_parent(ctx: ToolContext, user_id: int, args: SetGoalParentArgs) -> dict[str, Any]:
    async with ctx.session_factory() as session:
        goal = await GoalService(session).set_parent(user_id, args.goal_id, args.parent_goal_id)
        return build_tool_success(goal=goal.to_dict())


TOOLS = [
    ToolSpec(
        "add_task",
        "Add a task to the user's prioritized list. Include money impact, time estimate and "
        "deadline when the user mentions them; the task is scored automatically.",
        AddTaskArgs,
        add_task,
    ),
    ToolSpec("complete_task", "Mark a task as done.", CompleteTaskArgs, complete_task),
    ToolSpec(
        "set_reminder",
        "Schedule a reminder. Pass the user's wording for the time (\"tomorrow at 10am\"). "
        "If the result has needs_time, ask the user when exactly.",
        SetReminderArgs,
        set_reminder,
    ),
    ToolSpec(
        "add_protected_block",
        "Create a recurring protected (interruption-free) time block. Tasks due inside it are deprioritized.",
        AddProtectedBlockArgs,
        add_protected_block,
    ),
    ToolSpec(
        "remove_protected_block",
        "Deactivate a protected time block. Task priorities are recalculated.",
        RemoveProtectedBlockArgs,
        remove_protected_block,
    ),
    ToolSpec(
        "create_goal",
        f"Create a goal. Types: {', '.join(t.value for t in GoalType)}. Habits track streaks.",
        CreateGoalArgs,
        create_goal,
    ),
    ToolSpec(
        "log_goal_progress",
        "Log progress on a goal by id or title. For habits, progress_value 1 is one check-in.",
        LogGoalProgressArgs,
        log_goal_progress,
    ),
    ToolSpec(
        "set_goal_parent",
        "Nest a goal under a parent goal (or detach it). Cycles are rejected.",
        SetGoalParentArgs,
        set_goal_parent,
    ),
]

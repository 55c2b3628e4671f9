"""
Tests for the tool registry and the built-in tools.

Every call goes through ToolRegistry.invoke(), the same path the agent
loop uses, so these also cover envelope normalization.
"""

from __future__ import annotations

import asyncio

import pytest

from src.models import User
from src.tools import ALL_TOOLS, ToolArgs, ToolContext, ToolRegistry, ToolSpec


class EmptyArgs(ToolArgs):
    pass


def single_tool_registry(tool_context, executor, timeout_seconds=1.0) -> ToolRegistry:
    registry = ToolRegistry(tool_context, timeout_seconds=timeout_seconds)
    registry.register(ToolSpec("probe", "Test tool", EmptyArgs, executor))
    return registry


# =============================================================================
# Registry behaviour
# =============================================================================


class TestRegistry:
    def test_catalog_lists_every_tool(self, registry):
        names = {entry["name"] for entry in registry.catalog()}
        assert {
            "search_web", "scrape_url", "save_note", "add_task", "complete_task", "set_reminder",
            "add_protected_block", "remove_protected_block", "create_goal", "log_goal_progress",
            "set_goal_parent", "send_email", "read_emails", "create_social_post", "manage_spreadsheet",
            "log_income", "log_wellbeing", "save_contact", "list_tasks", "daily_plan",
            "income_analysis", "goals_overview",
        } <= names
        entry = next(e for e in registry.catalog() if e["name"] == "set_reminder")
        assert entry["input_schema"]["type"] == "object"
        assert "time_expression" in entry["input_schema"]["properties"]

    def test_duplicate_registration_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register(registry.get("add_task"))

    async def test_unknown_tool(self, registry, user_id):
        result = await registry.invoke(user_id, "launch_rocket", {})
        assert result["success"] is False
        assert result["code"] == "UNKNOWN_TOOL"
        assert "add_task" in result["available_tools"]

    async def test_invalid_arguments_carry_details(self, registry, user_id):
        result = await registry.invoke(user_id, "add_task", {"priority": 9})
        assert result["code"] == "INVALID_ARGUMENTS"
        fields = {detail["field"] for detail in result["details"]}
        assert {"title", "priority"} <= fields

    async def test_unknown_argument_rejected(self, registry, user_id):
        result = await registry.invoke(user_id, "save_note", {"content": "x", "colour": "red"})
        assert result["code"] == "INVALID_ARGUMENTS"

    async def test_none_arguments_treated_as_empty(self, registry, user_id):
        result = await registry.invoke(user_id, "daily_plan", None)
        assert result["success"] is True

    async def test_timeout(self, tool_context, user_id):
        async def slow(ctx, uid, args):
            await asyncio.sleep(1)
            return {"success": True}

        result = await single_tool_registry(tool_context, slow, timeout_seconds=0.01).invoke(user_id, "probe", {})
        assert result["success"] is False
        assert result["code"] == "TIMEOUT"

    async def test_exception_becomes_tool_failed(self, tool_context, user_id):
        async def broken(ctx, uid, args):
            raise RuntimeError("provider exploded")

        result = await single_tool_registry(tool_context, broken).invoke(user_id, "probe", {})
        assert result == {"success": False, "error": "provider exploded", "code": "TOOL_FAILED"}

    async def test_malformed_result_becomes_tool_failed(self, tool_context, user_id):
        async def sloppy(ctx, uid, args):
            return "done"

        result = await single_tool_registry(tool_context, sloppy).invoke(user_id, "probe", {})
        assert result["code"] == "TOOL_FAILED"


# =============================================================================
# Productivity tools
# =============================================================================


class TestReminders:
    async def test_tomorrow_at_10am_in_user_timezone(self, registry, user_id):
        result = await registry.invoke(
            user_id, "set_reminder", {"reminder_text": "call Raj", "time_expression": "tomorrow at 10am"}
        )
        assert result["success"] is True
        assert result["scheduled_time"] == "2025-03-11T10:00:00+05:30"
        assert result["scheduled_time_utc"] == "2025-03-11T04:30:00+00:00"
        assert result["timezone"] == "Asia/Kolkata"

    async def test_unparseable_time_needs_time(self, registry, user_id):
        result = await registry.invoke(
            user_id, "set_reminder", {"reminder_text": "call Raj", "time_expression": "whenever works"}
        )
        assert result["success"] is False
        assert result["needs_time"] is True

    async def test_past_time_needs_time(self, registry, user_id):
        result = await registry.invoke(
            user_id, "set_reminder", {"reminder_text": "call Raj", "time_expression": "2025-03-01 10:00"}
        )
        assert result["needs_time"] is True


class TestTasks:
    async def test_add_task_with_deadline(self, registry, user_id):
        result = await registry.invoke(
            user_id,
            "add_task",
            {"title": "Pitch deck", "money_impact": 5000, "time_required_minutes": 120, "deadline": "tomorrow 5pm"},
        )
        assert result["success"] is True
        task = result["task"]
        assert task["deadline"] == "2025-03-11T11:30:00+00:00"
        assert task["priority_score"] > 14
        assert task["is_protected_time"] is False

    async def test_bad_deadline_needs_time(self, registry, user_id):
        result = await registry.invoke(user_id, "add_task", {"title": "Taxes", "deadline": "someday"})
        assert result["needs_time"] is True

    async def test_complete_unknown_task(self, registry, user_id):
        result = await registry.invoke(user_id, "complete_task", {"task_id": 404})
        assert result["code"] == "NOT_FOUND"

    async def test_protected_block_deprioritizes_and_removal_restores(self, registry, user_id):
        task = (await registry.invoke(user_id, "add_task", {"title": "Reply to vendor", "deadline": "today at 3pm"}))[
            "task"
        ]
        block = await registry.invoke(
            user_id,
            "add_protected_block",
            {"name": "Deep work", "start_time": "14:00", "end_time": "16:00", "days_of_week": ["daily"]},
        )
        assert block["success"] is True

        listed = await registry.invoke(user_id, "list_tasks", {})
        protected = listed["tasks"][0]
        assert protected["is_protected_time"] is True
        assert protected["priority_score"] < task["priority_score"]

        removed = await registry.invoke(user_id, "remove_protected_block", {"block_id": block["block"]["id"]})
        assert removed["is_active"] is False
        restored = (await registry.invoke(user_id, "list_tasks", {}))["tasks"][0]
        assert restored["priority_score"] == task["priority_score"]

    async def test_daily_plan_lists_todays_blocks(self, registry, user_id):
        await registry.invoke(
            user_id,
            "add_protected_block",
            {"name": "Gym", "start_time": "07:00", "end_time": "08:00", "days_of_week": ["monday"]},
        )
        plan = await registry.invoke(user_id, "daily_plan", {})
        assert plan["date"] == "2025-03-10"
        assert [b["name"] for b in plan["protected_blocks"]] == ["Gym"]


class TestGoals:
    async def test_progress_by_title(self, registry, user_id):
        await registry.invoke(user_id, "create_goal", {"title": "Drink water", "goal_type": "daily_habit"})
        result = await registry.invoke(user_id, "log_goal_progress", {"goal_title": "drink water"})
        assert result["success"] is True
        assert result["streak"] == 1

    async def test_unreadable_progress_needs_value(self, registry, user_id):
        created = await registry.invoke(user_id, "create_goal", {"title": "Save", "target_value": 1000})
        result = await registry.invoke(
            user_id, "log_goal_progress", {"goal_id": created["goal"]["id"], "progress_value": "a bit"}
        )
        assert result["needs_value"] is True

    async def test_negative_progress_text_needs_value(self, registry, user_id):
        created = await registry.invoke(user_id, "create_goal", {"title": "Run", "target_value": 100, "unit": "km"})
        result = await registry.invoke(
            user_id, "log_goal_progress", {"goal_id": created["goal"]["id"], "progress_value": "-30"}
        )
        assert result["needs_value"] is True

        overview = await registry.invoke(user_id, "goals_overview", {})
        assert overview["goals"][0]["current_value"] == 0

    async def test_progress_requires_goal_reference(self, registry, user_id):
        result = await registry.invoke(user_id, "log_goal_progress", {"progress_value": 1})
        assert result["code"] == "INVALID_ARGUMENTS"

    async def test_parent_cycle_is_invalid(self, registry, user_id):
        top = (await registry.invoke(user_id, "create_goal", {"title": "Top"}))["goal"]
        leaf = (await registry.invoke(user_id, "create_goal", {"title": "Leaf", "parent_goal_id": top["id"]}))["goal"]
        result = await registry.invoke(user_id, "set_goal_parent", {"goal_id": top["id"], "parent_goal_id": leaf["id"]})
        assert result["code"] == "INVALID_ARGUMENTS"

    async def test_overview(self, registry, user_id):
        await registry.invoke(user_id, "create_goal", {"title": "Learn Rust", "goal_type": "learning"})
        overview = await registry.invoke(user_id, "goals_overview", {})
        assert overview["active"] == 1
        assert overview["goals"][0]["title"] == "Learn Rust"


# =============================================================================
# Communication tools
# =============================================================================


class TestCommunication:
    async def test_send_email(self, registry, user_id, fake_mail):
        result = await registry.invoke(
            user_id, "send_email", {"to": "raj@example.com", "subject": "Hi", "body": "Call tomorrow?"}
        )
        assert result["success"] is True
        assert result["message_id"] == "msg-1"
        assert fake_mail.sent[0]["to"] == "raj@example.com"

    async def test_invalid_recipient(self, registry, user_id, fake_mail):
        result = await registry.invoke(user_id, "send_email", {"to": "raj", "subject": "Hi", "body": "x"})
        assert result["code"] == "INVALID_ARGUMENTS"
        assert fake_mail.sent == []

    async def test_not_connected(self, session_factory, settings, user_id):
        bare = ToolRegistry(ToolContext(session_factory=session_factory, settings=settings))
        bare.register_all(ALL_TOOLS)
        result = await bare.invoke(user_id, "send_email", {"to": "raj@example.com", "subject": "Hi", "body": "x"})
        assert result["not_connected"] is True
        assert result["code"] == "NOT_CONNECTED"

    async def test_post_limit(self, registry, user_id, fake_social):
        results = [
            await registry.invoke(user_id, "create_social_post", {"content": f"Update {i}"}) for i in range(4)
        ]
        assert [r["success"] for r in results] == [True, True, True, False]
        assert [r.get("remaining_today") for r in results[:3]] == [2, 1, 0]
        assert results[3]["rate_limited"] is True
        assert len(fake_social.posts) == 3

    async def test_post_limit_is_shared_by_users_of_one_account(self, registry, session_factory, user_id, fake_social):
        async with session_factory() as session:
            other = User(name="Ravi", email="ravi@example.com")
            session.add(other)
            await session.commit()
            other_id = other.id

        first = [await registry.invoke(user_id, "create_social_post", {"content": f"Asha {i}"}) for i in range(2)]
        second = [await registry.invoke(other_id, "create_social_post", {"content": f"Ravi {i}"}) for i in range(2)]

        assert [r["success"] for r in first + second] == [True, True, True, False]
        assert second[1]["code"] == "RATE_LIMITED"
        assert len(fake_social.posts) == 3

    async def test_spreadsheet_read(self, registry, user_id, fake_sheets):
        result = await registry.invoke(
            user_id, "manage_spreadsheet", {"action": "read", "spreadsheet_id": "sheet-1", "range": "A1:B2"}
        )
        assert result["row_count"] == 2
        assert fake_sheets.calls == [("read", "sheet-1", "A1:B2")]

    @pytest.mark.parametrize(
        "args",
        [
            {"action": "write", "spreadsheet_id": "s", "range": "A1"},
            {"action": "read", "spreadsheet_id": "s"},
            {"action": "delete_rows", "spreadsheet_id": "s", "sheet_id": 0, "start_index": 5, "end_index": 5},
        ],
    )
    async def test_spreadsheet_argument_rules(self, registry, user_id, args):
        result = await registry.invoke(user_id, "manage_spreadsheet", args)
        assert result["code"] == "INVALID_ARGUMENTS"


# =============================================================================
# Research and personal tools
# =============================================================================


class TestResearchAndPersonal:
    async def test_search_and_note(self, registry, user_id, fake_search):
        found = await registry.invoke(user_id, "search_web", {"query": "gst filing dates"})
        assert found["results"][0]["title"] == "Result for gst filing dates"
        note = await registry.invoke(user_id, "save_note", {"content": "GST due 20th", "tags": ["tax"]})
        assert note["success"] is True
        assert fake_search.queries == ["gst filing dates"]

    async def test_scrape_rejects_bad_url(self, registry, user_id):
        result = await registry.invoke(user_id, "scrape_url", {"url": "not a url"})
        assert result["code"] == "INVALID_ARGUMENTS"

    async def test_log_income_parses_rupees(self, registry, user_id):
        result = await registry.invoke(
            user_id, "log_income", {"source": "Acme Corp", "amount": "₹5,000", "hours_spent": 2}
        )
        assert result["amount"] == 5000.0
        assert result["hourly_rate"] == 2500
        assert result["priority_score"] == 100

    async def test_log_income_needs_amount(self, registry, user_id):
        result = await registry.invoke(user_id, "log_income", {"source": "Acme Corp", "amount": "a lot"})
        assert result["needs_amount"] is True

    async def test_log_income_normalizes_hours_text(self, registry, user_id):
        result = await registry.invoke(
            user_id, "log_income", {"source": "Acme Corp", "amount": "5000", "hours_spent": "2 hours"}
        )
        assert result["success"] is True
        assert result["hourly_rate"] == 2500

    @pytest.mark.parametrize("hours", ["a while", "-2h"])
    async def test_log_income_unreadable_hours_needs_amount(self, registry, user_id, hours):
        result = await registry.invoke(
            user_id, "log_income", {"source": "Acme Corp", "amount": "5000", "hours_spent": hours}
        )
        assert result["needs_amount"] is True

    async def test_log_income_rejects_negative_amount_text(self, registry, user_id):
        result = await registry.invoke(user_id, "log_income", {"source": "Acme Corp", "amount": "-₹500"})
        assert result["needs_amount"] is True

    async def test_contact_upsert(self, registry, user_id):
        first = await registry.invoke(user_id, "save_contact", {"name": "Raj", "birthday": "1990-03-10"})
        second = await registry.invoke(user_id, "save_contact", {"name": "raj", "phone": "+91 98765 43210"})
        assert first["created"] is True
        assert second["created"] is False
        assert second["contact_id"] == first["contact_id"]

    async def test_wellbeing_log(self, registry, user_id):
        result = await registry.invoke(user_id, "log_wellbeing", {"log_type": "water", "value": "2 glasses"})
        assert result["log_type"] == "water"

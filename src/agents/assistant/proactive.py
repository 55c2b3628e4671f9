"""
Proactive Trigger Engine for Shree.

Evaluates every opted-in user on a fixed cadence and emits proactive
messages:

- deadline reminders for pending tasks due within the horizon
- birthday reminders for contacts born on today's month/day
- daily-habit check-ins at the goal check-in hour
- hydration and break nudges (only with wellbeing enabled)
- a heads-up 5-15 minutes before a protected block starts
- morning briefing at wake time, evening summary one hour before sleep
- due one-off reminders, escalated by email when left unacknowledged

Deduplication is the correctness mechanism: before each write the
notification log is checked for the same (user, trigger_reason) inside
the category's window (or the user's current calendar day). Re-running
a sweep inside a window stores nothing new. No lock is held across a
sweep.

Messages with priority >= the escalation threshold also go out by email.

Usage:
    engine = ProactiveTriggerEngine(session_factory, notifier, mail=gmail)
    report = await engine.run_sweep()
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, time, timedelta
from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.agents.assistant.briefing import (
    EVENING,
    MORNING,
    BriefingWriter,
    collect_evening,
    collect_morning,
    contacts_with_birthday,
)
from src.config.settings import NotificationPolicy
from src.infra.monitoring import record_proactive_message, record_sweep_failure
from src.integrations.base import MailProvider, Notifier
from src.lib.exceptions import NotFoundError, ShreeException, StateError
from src.lib.logging import hash_uid
from src.models import MessageType, ProactiveMessage, Reminder, ReminderStatus, UserProfile
from src.services.goal_service import GoalService
from src.services.profile_service import ProfileService, clock_hour, local_now
from src.services.protected_time import WEEKDAY_NAMES, ProtectedTimeService, TimeWindow
from src.services.task_service import TaskService

logger = structlog.get_logger()

# Priorities per category
PRIORITY_DEADLINE_1H = 95
PRIORITY_DEADLINE_6H = 85
PRIORITY_DEADLINE = 75
PRIORITY_PROTECTED_START = 85
PRIORITY_MORNING_BRIEFING = 80
PRIORITY_REMINDER = 80
PRIORITY_BIRTHDAY = 70
PRIORITY_EVENING_SUMMARY = 70
PRIORITY_GOAL = 65
PRIORITY_HYDRATION = 40
PRIORITY_BREAK = 35

MAX_REMINDER_ESCALATIONS = 1
EMAIL_SUBJECT_PREFIX = "[Shree AI]"

CHANNEL_IN_APP = "in_app"
CHANNEL_EMAIL = "email"


@dataclass(frozen=True)
class Trigger:
    """A message the engine wants to send, before deduplication.

    dedup_window None means "once per user-local calendar day".
    """

    message_type: MessageType
    content: str
    trigger_reason: str
    priority: int
    dedup_window: timedelta | None = None


@dataclass
class SweepReport:
    users: int = 0
    messages: int = 0
    failures: int = 0
    failed_user_ids: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "users": self.users,
            "messages": self.messages,
            "failures": self.failures,
            "failed_user_ids": self.failed_user_ids,
        }


def _local_day_start(now_local: datetime) -> datetime:
    return datetime.combine(now_local.date(), time.min, tzinfo=now_local.tzinfo)


def _humanize(delta: timedelta) -> str:
    minutes = max(int(delta.total_seconds() // 60), 0)
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours = round(minutes / 60)
    return f"{hours} hour{'s' if hours != 1 else ''}"


def deadline_priority(remaining: timedelta) -> int:
    """Urgency band for a deadline `remaining` away."""
    if remaining <= timedelta(hours=1):
        return PRIORITY_DEADLINE_1H
    if remaining <= timedelta(hours=6):
        return PRIORITY_DEADLINE_6H
    return PRIORITY_DEADLINE


class ProactiveTriggerEngine:
    """
    Periodic trigger evaluation, briefings and reminder dispatch.

    Args:
        session_factory: Async session factory
        notifier: In-app channel
        mail: Email collaborator used for escalation (optional)
        briefing_writer: Briefing summarizer (template only when omitted)
        policy: Dedup windows and trigger timing
        clock: Returns "now" as an aware UTC datetime
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
        mail: MailProvider | None = None,
        briefing_writer: BriefingWriter | None = None,
        policy: NotificationPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.notifier = notifier
        self.mail = mail
        self.briefing_writer = briefing_writer or BriefingWriter()
        self.policy = policy or NotificationPolicy()
        self._clock = clock or (lambda: datetime.now(UTC))

    # =========================================================================
    # Sweeps
    # =========================================================================

    async def _proactive_users(self) -> list[int]:
        async with self.session_factory() as session:
            return await ProfileService(session).list_proactive_user_ids()

    async def run_sweep(self, now: datetime | None = None) -> SweepReport:
        """Evaluate every trigger category for every opted-in user."""
        now = now or self._clock()
        report = SweepReport()
        for user_id in await self._proactive_users():
            report.users += 1
            try:
                sent = await self.evaluate_user(user_id, now)
                report.messages += len(sent)
            except Exception as e:
                # One user's failure must not stop the sweep
                report.failures += 1
                report.failed_user_ids.append(user_id)
                record_sweep_failure("proactive")
                logger.error("proactive_user_failed", user_hash=hash_uid(user_id), error=str(e))
        logger.info("proactive_sweep_done", **report.to_dict())
        return report

    async def run_briefings(self, now: datetime | None = None) -> SweepReport:
        """Send morning/evening briefings to users whose local hour matches."""
        now = now or self._clock()
        report = SweepReport()
        for user_id in await self._proactive_users():
            report.users += 1
            try:
                async with self.session_factory() as session:
                    profile = await ProfileService(session).get_or_create_profile(user_id)
                    now_local = local_now(profile, now)
                    kinds = []
                    if profile.morning_briefing_enabled and now_local.hour == clock_hour(profile.wake_time, 7):
                        kinds.append(MORNING)
                    if profile.evening_summary_enabled and now_local.hour == (clock_hour(profile.sleep_time, 23) - 1) % 24:
                        kinds.append(EVENING)
                    for kind in kinds:
                        if await self._send_briefing(session, user_id, profile, kind, now):
                            report.messages += 1
            except Exception as e:
                report.failures += 1
                report.failed_user_ids.append(user_id)
                record_sweep_failure("briefing")
                logger.error("briefing_user_failed", user_hash=hash_uid(user_id), error=str(e))
        return report

    async def evaluate_user(self, user_id: int, now: datetime | None = None) -> list[ProactiveMessage]:
        """Run every trigger category for one user and store what passes dedup."""
        now = now or self._clock()
        sent: list[ProactiveMessage] = []
        async with self.session_factory() as session:
            profile = await ProfileService(session).get_or_create_profile(user_id)
            now_local = local_now(profile, now)

            triggers: list[Trigger] = []
            triggers += await self._deadline_triggers(session, user_id, now)
            triggers += await self._birthday_triggers(session, user_id, now_local)
            triggers += await self._goal_triggers(session, user_id, now_local)
            triggers += self._wellbeing_triggers(profile, now_local)
            triggers += await self._protected_start_triggers(session, user_id, now_local)

            for trigger in triggers:
                message = await self._store_and_send(session, user_id, profile, trigger, now)
                if message is not None:
                    sent.append(message)
        return sent

    # =========================================================================
    # Trigger categories
    # =========================================================================

    async def _deadline_triggers(self, session: AsyncSession, user_id: int, now: datetime) -> list[Trigger]:
        tasks = await TaskService(session).pending_due_within(user_id, now, self.policy.deadline_horizon)
        triggers = []
        for task in tasks:
            remaining = task.deadline - now
            priority = deadline_priority(remaining)
            if priority == PRIORITY_DEADLINE_1H:
                content = f'⚠️ URGENT: "{task.title}" is due in {_humanize(remaining)}. This is your final reminder.'
            else:
                content = f'📅 Reminder: "{task.title}" is due in {_humanize(remaining)}.'
                if task.money_impact:
                    content += f" Worth ₹{task.money_impact:g}!"
            triggers.append(
                Trigger(MessageType.DEADLINE_REMINDER, content, f"deadline:{task.id}", priority, self.policy.deadline_dedup)
            )
        return triggers

    async def _birthday_triggers(self, session: AsyncSession, user_id: int, now_local: datetime) -> list[Trigger]:
        triggers = []
        for contact in await contacts_with_birthday(session, user_id, now_local.date()):
            content = f"🎂 Today is {contact.name}'s birthday! Don't forget to wish them."
            if contact.phone:
                content += f" Call: {contact.phone}"
            triggers.append(Trigger(MessageType.BIRTHDAY_REMINDER, content, f"birthday:{contact.id}", PRIORITY_BIRTHDAY))
        return triggers

    async def _goal_triggers(self, session: AsyncSession, user_id: int, now_local: datetime) -> list[Trigger]:
        if now_local.hour != self.policy.goal_checkin_hour:
            return []
        goals = await GoalService(session).daily_goals_without_progress(user_id, _local_day_start(now_local))
        triggers = []
        for goal in goals:
            if goal.streak_count:
                nudge = f"You have a {goal.streak_count}-day streak! Don't break it!"
            else:
                nudge = "Start building your streak today!"
            triggers.append(
                Trigger(
                    MessageType.GOAL_REMINDER,
                    f'💪 Daily goal reminder: "{goal.title}". {nudge}',
                    f"goal:{goal.id}",
                    PRIORITY_GOAL,
                )
            )
        return triggers

    def _wellbeing_triggers(self, profile: UserProfile, now_local: datetime) -> list[Trigger]:
        if not profile.wellbeing_enabled:
            return []
        hour = now_local.hour
        triggers = []
        if hour in self.policy.hydration_hours:
            triggers.append(
                Trigger(
                    MessageType.HYDRATION_REMINDER,
                    "💧 Time for a water break! Stay hydrated to maintain focus.",
                    "hydration",
                    PRIORITY_HYDRATION,
                    self.policy.hydration_dedup,
                )
            )
        work_start = clock_hour(profile.work_start_time, 9)
        work_end = clock_hour(profile.work_end_time, 18)
        if work_start <= hour < work_end and hour % 2 == 0:
            triggers.append(
                Trigger(
                    MessageType.BREAK_REMINDER,
                    "🧘 Take a 5-minute stretch break. Your productivity will thank you!",
                    "break",
                    PRIORITY_BREAK,
                    self.policy.break_dedup,
                )
            )
        return triggers

    async def _protected_start_triggers(
        self, session: AsyncSession, user_id: int, now_local: datetime
    ) -> list[Trigger]:
        current = now_local.replace(second=0, microsecond=0)
        triggers = []
        for block in await ProtectedTimeService(session).list_active(user_id):
            lead = self._lead_before_start(TimeWindow.from_block(block), current)
            if lead is not None:
                minutes = int(lead.total_seconds() // 60)
                content = (
                    f'🛡️ "{block.name}" starts in {minutes} minutes. '
                    f"{block.purpose or 'Time to focus!'} Keep distractions away."
                )
                triggers.append(
                    Trigger(
                        MessageType.PROTECTED_TIME_START,
                        content,
                        f"block:{block.id}",
                        PRIORITY_PROTECTED_START,
                        self.policy.protected_start_dedup,
                    )
                )
        return triggers

    def _lead_before_start(self, window: TimeWindow, current: datetime) -> timedelta | None:
        """Time until the window's next start if it falls in the announce window."""
        # Tomorrow is checked too, so a 00:05 block is announced at 23:55
        for day in (current.date(), current.date() + timedelta(days=1)):
            if not window.applies_on(WEEKDAY_NAMES[day.weekday()]):
                continue
            lead = datetime.combine(day, window.start, tzinfo=current.tzinfo) - current
            if self.policy.protected_lead_min < lead <= self.policy.protected_lead_max:
                return lead
        return None

    # =========================================================================
    # Briefings
    # =========================================================================

    async def send_briefing(
        self, user_id: int, kind: str, now: datetime | None = None, force: bool = False
    ) -> ProactiveMessage | None:
        """
        Build and send one briefing now, regardless of the hour.

        Args:
            user_id: Recipient
            kind: "morning" or "evening"
            force: Skip the once-per-day check

        Returns:
            The stored message, or None when today's briefing was already sent
        """
        if kind not in (MORNING, EVENING):
            raise ValueError(f"Unknown briefing kind: {kind}")
        now = now or self._clock()
        async with self.session_factory() as session:
            profile = await ProfileService(session).get_or_create_profile(user_id)
            return await self._send_briefing(session, user_id, profile, kind, now, force=force)

    async def _send_briefing(
        self,
        session: AsyncSession,
        user_id: int,
        profile: UserProfile,
        kind: str,
        now: datetime,
        force: bool = False,
    ) -> ProactiveMessage | None:
        now_local = local_now(profile, now)
        if kind == MORNING:
            message_type, priority = MessageType.MORNING_BRIEFING, PRIORITY_MORNING_BRIEFING
        else:
            message_type, priority = MessageType.EVENING_SUMMARY, PRIORITY_EVENING_SUMMARY
        reason = f"{message_type.value}:{now_local.date().isoformat()}"

        # Skip the model call entirely when today's briefing is out already
        if not force and await self._already_sent(session, user_id, reason, _local_day_start(now_local)):
            return None

        collect = collect_morning if kind == MORNING else collect_evening
        data = await collect(session, user_id, now_local, name=profile.preferred_name)
        content = await self.briefing_writer.write(data)
        trigger = Trigger(message_type, content, reason, priority)
        return await self._store_and_send(session, user_id, profile, trigger, now, skip_dedup=force)

    # =========================================================================
    # Reminders
    # =========================================================================

    async def dispatch_due_reminders(self, now: datetime | None = None) -> dict[str, int]:
        """
        Push reminders whose time has come and escalate ignored ones by email.

        Returns:
            {"sent": n, "escalated": m}
        """
        now = now or self._clock()
        counts = {"sent": 0, "escalated": 0}
        async with self.session_factory() as session:
            due = await session.execute(
                select(Reminder)
                .where(Reminder.status == ReminderStatus.PENDING.value, Reminder.scheduled_time <= now)
                .order_by(Reminder.scheduled_time)
            )
            for reminder in due.scalars().all():
                reminder_id = reminder.id
                try:
                    profile = await ProfileService(session).get_or_create_profile(reminder.user_id)
                    trigger = Trigger(
                        MessageType.REMINDER,
                        f"⏰ Reminder: {reminder.reminder_text}",
                        f"reminder:{reminder.id}",
                        PRIORITY_REMINDER,
                        timedelta(days=1),
                    )
                    await self._store_and_send(session, reminder.user_id, profile, trigger, now)
                    reminder.status = ReminderStatus.SENT.value
                    reminder.last_reminder_sent = now
                    await session.commit()
                    counts["sent"] += 1
                except Exception as e:
                    await session.rollback()
                    record_sweep_failure("reminders")
                    logger.error("reminder_dispatch_failed", reminder_id=reminder_id, error=str(e))

            cutoff = now - self.policy.reminder_escalation_grace
            ignored = await session.execute(
                select(Reminder).where(
                    Reminder.status == ReminderStatus.SENT.value,
                    Reminder.escalation_count < MAX_REMINDER_ESCALATIONS,
                    Reminder.last_reminder_sent <= cutoff,
                )
            )
            for reminder in ignored.scalars().all():
                if await self._email_user(session, reminder.user_id, MessageType.REMINDER, reminder.reminder_text):
                    reminder.escalation_count += 1
                    reminder.last_reminder_sent = now
                    await session.commit()
                    counts["escalated"] += 1
        if counts["sent"] or counts["escalated"]:
            logger.info("reminders_dispatched", **counts)
        return counts

    # =========================================================================
    # Message log
    # =========================================================================

    async def acknowledge(
        self, user_id: int, message_id: int, action_taken: str | None = None, now: datetime | None = None
    ) -> ProactiveMessage:
        """
        Mark a message acknowledged. One-way: a second call raises.

        Raises:
            NotFoundError: If the message does not exist for this user
            StateError: If it was already acknowledged
        """
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProactiveMessage).where(
                    ProactiveMessage.id == message_id, ProactiveMessage.user_id == user_id
                )
            )
            message = result.scalar_one_or_none()
            if message is None:
                raise NotFoundError(f"Proactive message {message_id} not found")
            if message.acknowledged:
                raise StateError(f"Proactive message {message_id} is already acknowledged")

            message.acknowledged = True
            message.acknowledged_at = now or self._clock()
            message.action_taken = action_taken

            if message.message_type == MessageType.REMINDER.value and message.trigger_reason.startswith("reminder:"):
                reminder = await session.get(Reminder, int(message.trigger_reason.split(":", 1)[1]))
                if reminder is not None and reminder.user_id == user_id:
                    reminder.status = ReminderStatus.ACKNOWLEDGED.value

            await session.commit()
            return message

    async def get_messages(
        self,
        user_id: int,
        days: int = 7,
        acknowledged: bool | None = None,
        now: datetime | None = None,
    ) -> list[ProactiveMessage]:
        """Messages sent in the last `days` days, newest first."""
        since = (now or self._clock()) - timedelta(days=days)
        query = select(ProactiveMessage).where(ProactiveMessage.user_id == user_id, ProactiveMessage.sent_at >= since)
        if acknowledged is not None:
            query = query.where(ProactiveMessage.acknowledged.is_(acknowledged))
        async with self.session_factory() as session:
            result = await session.execute(query.order_by(ProactiveMessage.sent_at.desc(), ProactiveMessage.id.desc()))
            return list(result.scalars().all())

    # =========================================================================
    # Store and deliver
    # =========================================================================

    async def _already_sent(self, session: AsyncSession, user_id: int, trigger_reason: str, since: datetime) -> bool:
        result = await session.execute(
            select(ProactiveMessage.id)
            .where(
                ProactiveMessage.user_id == user_id,
                ProactiveMessage.trigger_reason == trigger_reason,
                ProactiveMessage.sent_at >= since,
            )
            .limit(1)
        )
        return result.first() is not None

    async def _store_and_send(
        self,
        session: AsyncSession,
        user_id: int,
        profile: UserProfile,
        trigger: Trigger,
        now: datetime,
        skip_dedup: bool = False,
    ) -> ProactiveMessage | None:
        if not skip_dedup:
            if trigger.dedup_window is None:
                since = _local_day_start(local_now(profile, now))
            else:
                since = now - trigger.dedup_window
            if await self._already_sent(session, user_id, trigger.trigger_reason, since):
                return None

        message = ProactiveMessage(
            user_id=user_id,
            message_type=trigger.message_type.value,
            content=trigger.content,
            trigger_reason=trigger.trigger_reason,
            priority=trigger.priority,
            sent_at=now,
        )
        session.add(message)
        await session.commit()

        pushed = True
        try:
            await self.notifier.push(
                user_id,
                {
                    "type": "proactive_message",
                    "message": message.to_dict(),
                },
            )
        except Exception as e:
            # Stored already, so escalation below is the only other delivery
            pushed = False
            logger.warning("proactive_push_failed", user_hash=hash_uid(user_id), error=str(e))
        else:
            record_proactive_message(message.message_type, CHANNEL_IN_APP)

        if trigger.priority >= self.policy.escalation_threshold:
            if await self._email_user(session, user_id, trigger.message_type, trigger.content):
                message.emailed = True
                await session.commit()

        logger.info(
            "proactive_message_sent",
            user_hash=hash_uid(user_id),
            message_type=message.message_type,
            priority=message.priority,
            emailed=message.emailed,
            pushed=pushed,
        )
        return message

    async def _email_user(self, session: AsyncSession, user_id: int, message_type: MessageType, body: str) -> bool:
        if self.mail is None:
            return False
        user = await ProfileService(session).get_user(user_id)
        if user is None or not user.email:
            return False

        subject = f"{EMAIL_SUBJECT_PREFIX} {message_type.value.replace('_', ' ').title()}"
        try:
            await self.mail.send_email(user.email, subject, body)
        except ShreeException as e:
            logger.warning("proactive_email_failed", user_hash=hash_uid(user_id), error=str(e))
            return False
        record_proactive_message(message_type.value, CHANNEL_EMAIL)
        return True

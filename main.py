"""
Shree -- Application Entry Point.

Local entry point for operating the assistant without the worker.

Usage:
    python main.py init-db                       # create tables
    python main.py chat 1 "remind me to call Raj tomorrow at 10am"
    python main.py sweep                         # one proactive sweep
    python main.py briefing 1 morning            # send a briefing now

Background scheduling runs in Celery:
    celery -A src.worker.celery_app worker --beat
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from src.agents.assistant.runtime import build_runtime
from src.lib.logging import setup_logging
from src.services.database import init_models


async def _init_db() -> int:
    runtime = await build_runtime()
    try:
        await init_models(runtime.engine)
    finally:
        await runtime.aclose()
    return 0


async def _chat(user_id: int, message: str) -> int:
    runtime = await build_runtime()
    try:
        result = await runtime.orchestrator.run_agent_task(user_id, message)
    finally:
        await runtime.aclose()
    print(result.result_text)
    return 0 if result.success else 1


async def _sweep() -> int:
    runtime = await build_runtime()
    try:
        report = await runtime.proactive.run_sweep()
        reminders = await runtime.proactive.dispatch_due_reminders()
    finally:
        await runtime.aclose()
    print(json.dumps({**report.to_dict(), "reminders": reminders}))
    return 0 if report.failures == 0 else 1


async def _briefing(user_id: int, kind: str) -> int:
    runtime = await build_runtime()
    try:
        message = await runtime.proactive.send_briefing(user_id, kind, force=True)
    finally:
        await runtime.aclose()
    print(message.content if message is not None else "")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="shree", description="Shree personal assistant")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("init-db", help="Create database tables")
    chat = commands.add_parser("chat", help="Send one message through the agent")
    chat.add_argument("user_id", type=int)
    chat.add_argument("message")
    commands.add_parser("sweep", help="Run one proactive sweep and reminder dispatch")
    briefing = commands.add_parser("briefing", help="Send a briefing immediately")
    briefing.add_argument("user_id", type=int)
    briefing.add_argument("kind", choices=["morning", "evening"])
    args = parser.parse_args(argv)

    setup_logging()
    if args.command == "init-db":
        return asyncio.run(_init_db())
    if args.command == "chat":
        return asyncio.run(_chat(args.user_id, args.message))
    if args.command == "sweep":
        return asyncio.run(_sweep())
    return asyncio.run(_briefing(args.user_id, args.kind))


if __name__ == "__main__":
    sys.exit(main())

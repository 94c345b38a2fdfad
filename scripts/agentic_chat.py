#!/usr/bin/env python3
"""
Module: scripts/agentic_chat.py
Summary: Interactive console chat with long-term memory and switchable in-process sessions.
Inputs: AZURE_OPENAI_* / OPENAI_* credentials, MEMORY_FILE_PATH, AGENTIC_* env; CLI flags
Outputs: Conversational turns on stdout; memory facts persisted to the global memory file
Related: agentic/runtime/memory/*, agentic/config/*

Usage:
  python scripts/agentic_chat.py
  python scripts/agentic_chat.py --memory-file ~/.agentic/memory.json --telemetry

Commands inside the REPL:
  memory                 show every stored long-term memory
  history                show the short-term window of the active session
  sessions               list sessions (active marked with *)
  new [name]             start a new session and make it active
  switch <name|index>    activate a session by name or 1-based index
  focus <text>           prepend a one-shot hint to the next message
  focus clear            drop the pending hint
  help                   show commands and memory tools
  exit | quit            leave
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agentic.config import AppSettings, build_chat_service, console_memory
from agentic.logging import configure_logging
from agentic.runtime.memory import (
    AgenticChatError,
    ChatService,
    ConfigurationError,
    InMemorySessionStore,
    LoggingTelemetryClient,
    NotFoundError,
)
from agentic.runtime.memory.templates.memory_tool_descriptions import TOOL_DESCRIPTIONS_COMPACT

CONSOLE_OWNER = "console"

COMMANDS = {
    "memory": "show every stored long-term memory",
    "history": "show the short-term window of the active session",
    "sessions": "list sessions (active marked with *)",
    "new [name]": "start a new session and make it active",
    "switch <name|index>": "activate a session by name or 1-based index",
    "focus <text>": "prepend a one-shot hint to the next message",
    "focus clear": "drop the pending hint",
    "exit | quit": "leave",
}


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run an interactive memory-augmented chat")
    p.add_argument("--memory-file", default=None, help="Global memory file (overrides MEMORY_FILE_PATH)")
    p.add_argument("--window", type=int, default=None, help="Short-term window size (overrides AGENTIC_WINDOW_SIZE)")
    p.add_argument("--max-iterations", type=int, default=None, help="Model calls allowed per turn")
    p.add_argument("--telemetry", action="store_true", help="Log telemetry spans")
    p.add_argument("--log-level", default=None, help="Log level (overrides AGENTIC_LOG_LEVEL)")
    return p.parse_args()


def print_help() -> None:
    print("Commands:")
    for usage, text in COMMANDS.items():
        print(f"  {usage:<22} {text}")
    print("Memory tools available to the assistant:")
    for name, text in TOOL_DESCRIPTIONS_COMPACT.items():
        print(f"  {name:<22} {text}")


def print_sessions(store: InMemorySessionStore) -> None:
    for index, session in enumerate(store.sessions, start=1):
        marker = "*" if store.active is session else " "
        print(f" {marker} {index}. {session.name} - {session.title} ({len(session.messages)} messages)")


def print_history(service: ChatService, store: InMemorySessionStore) -> None:
    session = store.active
    if session is None:
        print("[chat] no active session")
        return
    window = service.orchestrator.build_window(session)
    summary = window.summarize()
    print(f"[chat] window {summary['turn_count']}/{summary['max_turns']} of {len(session.messages)} messages")
    for message in window.turns:
        print(f"  {message.role}> {message.content}")


def start_session(service: ChatService, store: InMemorySessionStore, name: str | None = None) -> None:
    session = service.create_session(CONSOLE_OWNER, name=name)
    print(f"[chat] session '{session.name}' started")
    if session.messages:
        print(f"bot> {session.messages[-1].content}\n")


def handle_command(line: str, service: ChatService, store: InMemorySessionStore) -> bool:
    """Run a REPL command. Returns False when ``line`` is not a command."""

    command, _, rest = line.partition(" ")
    command = command.lower()
    rest = rest.strip()
    focus = service.orchestrator.focus

    if command == "help" and not rest:
        print_help()
    elif command == "memory" and not rest:
        print(service.memory_for(CONSOLE_OWNER).format_for_prompt())
    elif command == "history" and not rest:
        print_history(service, store)
    elif command == "sessions" and not rest:
        print_sessions(store)
    elif command == "new":
        start_session(service, store, rest or None)
    elif command == "switch" and rest:
        try:
            session = store.switch_to(rest)
        except NotFoundError as exc:
            print(f"[warn] {exc}")
        else:
            print(f"[chat] switched to '{session.name}'")
    elif command == "focus" and rest:
        if rest.lower() == "clear":
            focus.clear()
            print("[chat] focus cleared")
        else:
            focus.set(rest)
            print(f"[chat] focus set: {focus.pending}")
    else:
        return False
    return True


def main() -> int:
    args = parse_args()

    try:
        settings = AppSettings.from_env()
    except ConfigurationError as exc:
        print(f"[error] {exc}")
        return 1
    settings.session_backend = "memory"
    if args.memory_file:
        settings.memory_file = Path(args.memory_file).expanduser()
    if args.window is not None:
        if args.window < 1:
            print("[error] --window must be at least 1")
            return 1
        settings.window_size = args.window
    if args.max_iterations:
        settings.max_tool_iterations = args.max_iterations
    configure_logging(args.log_level or settings.log_level, settings.log_format)

    store = InMemorySessionStore()
    telemetry = LoggingTelemetryClient(logging.INFO) if args.telemetry else None
    try:
        service = build_chat_service(
            settings,
            session_store=store,
            memory_factory=console_memory(settings),
            telemetry=telemetry,
        )
    except (ConfigurationError, ValueError) as exc:
        print(f"[error] {exc}")
        return 1

    print(f"[chat] memory file={settings.memory_file} window={settings.window_size}")
    start_session(service, store)
    print("Type your message, 'help' for commands. Ctrl-D or 'exit' to quit.")

    while True:
        try:
            line = input("you> ").strip()
        except EOFError:
            print()
            break
        if not line:
            continue
        if line.lower() in {"exit", "quit"}:
            break
        if handle_command(line, service, store):
            continue

        session = store.active
        if session is None:
            start_session(service, store)
            session = store.active
        try:
            result = service.send_message(CONSOLE_OWNER, session.id, line)
        except AgenticChatError as exc:
            print(f"[error] {exc}")
            continue
        for tool_result in result.tool_results:
            print(f"  {tool_result.trace_line()}")
        print(f"bot> {result.reply}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

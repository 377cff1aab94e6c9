"""Interactive CLI shell — the journal's views and actions over stdin/stdout."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from mindlink.conversation import NOT_ENOUGH_NOTES, clean_text
from mindlink.models import Attachment
from mindlink.state import ChangeView, SetSearch

if TYPE_CHECKING:
    from mindlink.core import Mindlink
    from mindlink.models import Memory

logger = logging.getLogger(__name__)

HELP = """\
Commands:
  /add <text>             record a new memory
  /attach <path> [text]   record a memory with an image or PDF attached
  /list                   show the timeline (respects /search)
  /search [term]          filter the timeline; no term clears the filter
  /delete <id>            delete a memory
  /graph [file]           print the knowledge graph as JSON, or write it to file
  /insights               cognitive insights over your notes
  /plan                   generate an evidence-based study plan
  /ping                   check the conversation engine
  /help                   this text
  exit | quit             leave
Anything else is sent to your digital twin."""


def format_memory(memory: Memory) -> str:
    day = datetime.fromtimestamp(memory.timestamp / 1000).strftime("%Y-%m-%d")
    lines = [f"[{day}] {memory.id}"]
    if memory.attachment is not None:
        lines.append(f"  ({memory.attachment.type}) {memory.attachment.name}")
    lines.append(f"  {memory.content}")
    if memory.concepts:
        lines.append("  " + " ".join(f"#{c}" for c in memory.concepts))
    return "\n".join(lines)


class CLIShell:
    """Interactive REPL — reads from stdin, writes to stdout."""

    def __init__(self, app: Mindlink) -> None:
        self.app = app
        self._running = False

    @property
    def name(self) -> str:
        return "cli"

    async def start(self) -> None:
        self._running = True
        loop = asyncio.get_event_loop()

        print("Mindlink — your digital memory twin (type /help, or 'exit' to quit)")
        print("-" * 48)

        while self._running:
            try:
                line = await loop.run_in_executor(None, self._read_input)
            except (EOFError, KeyboardInterrupt):
                print("\nBye!")
                break

            if line is None or line.strip().lower() in ("exit", "quit"):
                print("Bye!")
                break

            text = line.strip()
            if not text:
                continue
            try:
                await self.handle(text)
            except OSError as e:
                logger.error("Command failed: %s", e)
                print(f"Something went wrong: {e}")

    def _read_input(self) -> str | None:
        try:
            sys.stdout.write("\nYou: ")
            sys.stdout.flush()
            raw = sys.stdin.buffer.readline()
            if not raw:
                return None
            return raw.decode("utf-8", errors="replace").rstrip("\n")
        except EOFError:
            return None

    async def stop(self) -> None:
        self._running = False

    # ── Command routing ──────────────────────────────────────

    async def handle(self, text: str) -> None:
        """Route one input line to a command or to the chat."""
        if not text.startswith("/"):
            await self._chat(text)
            return

        cmd, _, rest = text[1:].partition(" ")
        rest = rest.strip()
        handler = {
            "add": self._add,
            "attach": self._attach,
            "list": self._list,
            "search": self._search,
            "delete": self._delete,
            "graph": self._graph,
            "insights": self._insights,
            "plan": self._plan,
            "ping": self._ping,
            "help": self._help,
        }.get(cmd.lower())
        if handler is None:
            print(f"Unknown command: /{cmd} (try /help)")
            return
        await handler(rest)

    async def _help(self, _: str) -> None:
        print(HELP)

    async def _add(self, rest: str) -> None:
        if not rest:
            print("Usage: /add <text>")
            return
        await self._store(rest, None)

    async def _attach(self, rest: str) -> None:
        try:
            parts = shlex.split(rest)
        except ValueError as e:
            print(f"Could not parse arguments: {e}")
            return
        if not parts:
            print("Usage: /attach <path> [text]")
            return
        path = Path(parts[0]).expanduser()
        try:
            attachment = Attachment.from_path(path)
        except OSError as e:
            print(f"Cannot read {path}: {e}")
            return
        await self._store(" ".join(parts[1:]), attachment)

    async def _store(self, content: str, attachment: Attachment | None) -> None:
        print("Mindlink is thinking...")
        memory = await self.app.add_memory(content, attachment)
        if memory is None:
            print("Could not encode that memory. Nothing was saved.")
            return
        print(format_memory(memory))

    async def _list(self, _: str) -> None:
        self.app.dispatch(ChangeView("timeline"))
        memories = self.app.timeline()
        if not memories:
            print("No memories yet. Add your first note with /add.")
            return
        print("\n\n".join(format_memory(m) for m in memories))

    async def _search(self, rest: str) -> None:
        self.app.dispatch(SetSearch(rest))
        await self._list("")

    async def _delete(self, rest: str) -> None:
        if self.app.delete_memory(rest):
            print(f"Deleted {rest}")
        else:
            print(f"No memory with id {rest!r}")

    async def _graph(self, rest: str) -> None:
        self.app.dispatch(ChangeView("graph"))
        payload = json.dumps(self.app.graph().to_dict(), ensure_ascii=False, indent=2)
        if rest:
            try:
                Path(rest).expanduser().write_text(payload, encoding="utf-8")
            except OSError as e:
                print(f"Cannot write {rest}: {e}")
                return
            print(f"Graph written to {rest}")
        else:
            print(payload)

    async def _chat(self, text: str) -> None:
        self.app.dispatch(ChangeView("chat"))
        reply = await self.app.send_chat(text)
        if reply is None:
            print("(no reply, try again)")
            return
        print(f"\nMindlink: {clean_text(reply.text)}")

    async def _insights(self, _: str) -> None:
        self.app.dispatch(ChangeView("insights"))
        text = await self.app.refresh_insights()
        print(clean_text(text or self.app.state.insights or NOT_ENOUGH_NOTES))

    async def _plan(self, _: str) -> None:
        self.app.dispatch(ChangeView("insights"))
        if len(self.app.memory) == 0:
            print("Add some notes first.")
            return
        print("Building your study plan...")
        plan = await self.app.create_study_plan()
        if plan is None:
            print("Could not generate a plan right now.")
            return
        print(clean_text(plan))

    async def _ping(self, _: str) -> None:
        healthy = await self.app.health_check()
        print(f"{self.app.engine.name}: {'ok' if healthy else 'unavailable'}")

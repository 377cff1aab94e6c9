"""Entry point: python -m mindlink [chat|graph]

- No args / "chat": Interactive journal shell
- "graph":          Print the knowledge graph as node-link JSON and exit
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys

from mindlink.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_cli() -> None:
    """Interactive shell mode."""
    config = load_config()
    _setup_logging(config.log_level)

    from mindlink.connectors.cli import CLIShell
    from mindlink.core import Mindlink
    from mindlink.engines import build_engine

    app = Mindlink(config, build_engine(config.engine))
    shell = CLIShell(app)

    try:
        asyncio.run(shell.start())
    except KeyboardInterrupt:
        pass


def _run_graph() -> None:
    """Dump the graph without touching the engine."""
    config = load_config()
    _setup_logging(config.log_level)

    from mindlink.graph import build_graph
    from mindlink.memory.store import MemoryStore

    store = MemoryStore(config.memories_file)
    print(json.dumps(build_graph(store.memories).to_dict(), ensure_ascii=False, indent=2))


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"

    if cmd in ("chat", "repl"):
        _run_cli()
    elif cmd == "graph":
        _run_graph()
    else:
        print("Usage: python -m mindlink [chat|graph]")
        print("  chat   — Interactive journal shell (default)")
        print("  graph  — Print the knowledge graph as JSON")
        sys.exit(1)


if __name__ == "__main__":
    main()

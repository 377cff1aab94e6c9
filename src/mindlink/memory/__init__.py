"""Journal persistence — memories and chat history.

Layout:
    ~/.mindlink/
    ├── memories.json      # JSON array of memories, newest first
    ├── chat.json          # JSON array of chat turns, oldest first
    └── mindlink.toml      # optional configuration

Each file is a single snapshot rewritten on every change. A file that
cannot be read is treated as empty.
"""

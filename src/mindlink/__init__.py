"""Mindlink — a personal memory journal with an AI-built knowledge graph."""

__version__ = "0.1.0"

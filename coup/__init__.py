"""Core rules engine package for Coup."""

__all__ = [
    "roles",
    "deck",
    "history",
    "player",
    "phases",
    "commands",
    "rules_schema",
    "state",
    "mechanics",
    "views",
    "game",
    "manager",
]

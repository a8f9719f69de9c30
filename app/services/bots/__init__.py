"""Bot players: difficulty-tiered move selection for every game."""

from .player import BotPlayer, select_move

__all__ = ["BotPlayer", "select_move"]

"""Backend-agnostic data access interface for decks and games."""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from services.domain import DashboardStats, Deck, Game, Number

__all__ = [
    "DataManager",
    "DataManagerError",
    "DeckInput",
    "DeckUpdateInput",
    "GameInput",
    "GameUpdateInput",
]


class DataManagerError(RuntimeError):
    """Raised by data managers; ``status`` is the HTTP status to answer with."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


@dataclass(frozen=True)
class DeckInput:
    deck_name: str
    target_bracket: Optional[Number] = None
    summary: Optional[str] = None
    archidekt_link: Optional[str] = None


@dataclass(frozen=True)
class DeckUpdateInput(DeckInput):
    deck_id: str = ""
    original_name: str = ""


@dataclass(frozen=True)
class GameInput:
    deck_name: str
    winner: Optional[Number] = None
    fun: Optional[Number] = None
    p2_fun: Optional[Number] = None
    p3_fun: Optional[Number] = None
    p4_fun: Optional[Number] = None
    notes: Optional[str] = None
    est_bracket: Optional[Number] = None


@dataclass(frozen=True)
class GameUpdateInput(GameInput):
    game_id: str = ""


class DataManager(ABC):
    """Deck/game storage for a single user.

    Implementations raise ``DataManagerError`` with status 404 when a deck or
    game cannot be found for the current user.
    """

    name = "base"

    @abstractmethod
    def get_decks(self) -> List[Deck]:
        ...

    @abstractmethod
    def get_games(self) -> List[Game]:
        ...

    @abstractmethod
    def get_deck_by_id(self, deck_id: str) -> Optional[Deck]:
        """Deck with its games attached and, when it has games, its stats."""

    @abstractmethod
    def get_dashboard_stats(self) -> DashboardStats:
        ...

    @abstractmethod
    def append_deck(self, data: DeckInput) -> None:
        ...

    @abstractmethod
    def append_game(self, data: GameInput) -> None:
        ...

    @abstractmethod
    def update_deck(self, data: DeckUpdateInput) -> None:
        ...

    @abstractmethod
    def update_game(self, data: GameUpdateInput) -> None:
        ...

    @abstractmethod
    def delete_game(self, game_id: str) -> None:
        ...

    @abstractmethod
    def delete_deck(self, deck_id: str, deck_name: str) -> int:
        """Delete a deck and its games; returns how many games were removed."""

"""Backend-independent deck, game and statistics records.

Both data backends (SQL rows and spreadsheet cell matrices) are normalized into
these dataclasses before anything else touches them. ``to_dict`` produces the
camelCase JSON shape served by the API.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

Number = Union[int, float]

__all__ = [
    "Deck",
    "Game",
    "Stats",
    "DeckStatsRow",
    "DashboardStats",
    "Number",
]


@dataclass(frozen=True)
class Stats:
    """Aggregated statistics for a deck or for the whole account.

    ``win_rate`` and ``expected_winrate`` are fractions in 0..1. Averages are
    ``None`` while there is no data for them.
    """

    total_games: int
    wins: int
    losses: int
    win_rate: float
    expected_winrate: float
    avg_fun_self: Optional[float]
    std_fun_self: Optional[float]
    avg_fun_others: Optional[float]
    avg_fun_wins: Optional[float]
    avg_fun_losses: Optional[float]
    avg_est_bracket: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalGames": self.total_games,
            "wins": self.wins,
            "losses": self.losses,
            "winRate": self.win_rate,
            "expectedWinrate": self.expected_winrate,
            "avgFunSelf": self.avg_fun_self,
            "stdFunSelf": self.std_fun_self,
            "avgFunOthers": self.avg_fun_others,
            "avgFunWins": self.avg_fun_wins,
            "avgFunLosses": self.avg_fun_losses,
            "avgEstBracket": self.avg_est_bracket,
        }


@dataclass(frozen=True)
class Deck:
    deck_name: str
    target_bracket: Optional[Number] = None
    summary: Optional[str] = None
    archidekt_link: Optional[str] = None
    id: Optional[str] = None
    stats: Optional[Stats] = None
    games: Optional[List["Game"]] = None

    def to_dict(self, include_games: bool = True) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "deckName": self.deck_name,
            "targetBracket": self.target_bracket,
            "summary": self.summary,
            "archidektLink": self.archidekt_link,
        }
        if self.stats is not None:
            payload["stats"] = self.stats.to_dict()
        if include_games and self.games is not None:
            payload["games"] = [game.to_dict() for game in self.games]
        return payload


@dataclass(frozen=True)
class Game:
    """One recorded game; ``deck`` is a deck name or the resolved ``Deck``."""

    deck: Union[str, Deck]
    winner: Optional[Number] = None
    fun: Optional[Number] = None
    p2_fun: Optional[Number] = None
    p3_fun: Optional[Number] = None
    p4_fun: Optional[Number] = None
    notes: Optional[str] = None
    est_bracket: Optional[Number] = None
    id: Optional[str] = None

    @property
    def deck_name(self) -> str:
        name = self.deck.deck_name if isinstance(self.deck, Deck) else self.deck
        return str(name if name is not None else "")

    def others_fun(self) -> List[Number]:
        return [value for value in (self.p2_fun, self.p3_fun, self.p4_fun) if value is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "deck": self.deck_name,
            "deckId": self.deck.id if isinstance(self.deck, Deck) else None,
            "winner": self.winner,
            "fun": self.fun,
            "p2Fun": self.p2_fun,
            "p3Fun": self.p3_fun,
            "p4Fun": self.p4_fun,
            "notes": self.notes,
            "estBracket": self.est_bracket,
        }


@dataclass
class DeckStatsRow:
    """Per-deck dashboard row. ``win_rate`` and ``usage_percent`` are 0..100."""

    id: str
    name: str
    games: int
    wins: int
    losses: int
    win_rate: float
    usage_percent: float = 0.0
    avg_fun_self: Optional[float] = None
    avg_fun_others: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "games": self.games,
            "wins": self.wins,
            "losses": self.losses,
            "winRate": self.win_rate,
            "usagePercent": self.usage_percent,
            "avgFunSelf": self.avg_fun_self,
            "avgFunOthers": self.avg_fun_others,
        }


@dataclass(frozen=True)
class DashboardStats:
    stats: Optional[Stats]
    deck_stats: List[DeckStatsRow]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stats": self.stats.to_dict() if self.stats is not None else None,
            "deckStats": [row.to_dict() for row in self.deck_stats],
        }

"""Win-rate and fun-score aggregation over recorded games.

Everything here is pure: no I/O, no caching, same input gives the same output.

Winner convention: ``1`` is a win for the deck owner, ``2``-``4`` is a loss
(another seat won). A legacy ``0`` is not tallied as a loss but its fun score
feeds ``avg_fun_losses``. Any other value is ignored for win/loss tallies.
"""
from __future__ import annotations

import math
from dataclasses import replace
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .domain import DashboardStats, Deck, DeckStatsRow, Game, Number, Stats

__all__ = [
    "LOSS_SEATS",
    "average",
    "standard_deviation",
    "is_win",
    "is_loss",
    "players_in_game",
    "stats_from_games",
    "stats_from_sums",
    "with_stats_from_games",
    "deck_stats_rows",
    "apply_usage_percent",
    "dashboard_stats",
]

WIN_SEAT = 1
LOSS_SEATS = (2, 3, 4)
LEGACY_LOSS_FLAG = 0


def average(values: Sequence[Number]) -> Optional[float]:
    """Arithmetic mean, or ``None`` for an empty sequence."""
    if not values:
        return None
    return sum(values) / len(values)


def standard_deviation(values: Sequence[Number]) -> Optional[float]:
    """Sample standard deviation (n - 1), or ``None`` for fewer than two values."""
    if len(values) < 2:
        return None
    avg = sum(values) / len(values)
    variance = sum((v - avg) * (v - avg) for v in values) / (len(values) - 1)
    return math.sqrt(variance)


def is_win(winner: Optional[Number]) -> bool:
    return winner is not None and winner == WIN_SEAT


def is_loss(winner: Optional[Number]) -> bool:
    return winner is not None and winner in LOSS_SEATS


def players_in_game(game: Game) -> int:
    """Table size inferred from which of the other seats recorded a fun score."""
    return 1 + len(game.others_fun())


def stats_from_games(games: Iterable[Game]) -> Stats:
    total_games = 0
    wins = 0
    losses = 0
    expected_wins = 0.0

    fun_self: List[Number] = []
    fun_others: List[Number] = []
    fun_wins: List[Number] = []
    fun_losses: List[Number] = []
    est_brackets: List[Number] = []

    for game in games:
        total_games += 1
        if is_win(game.winner):
            wins += 1
        elif is_loss(game.winner):
            losses += 1

        if game.fun is not None:
            fun_self.append(game.fun)
            if is_win(game.winner):
                fun_wins.append(game.fun)
            elif game.winner is not None and game.winner == LEGACY_LOSS_FLAG:
                fun_losses.append(game.fun)

        fun_others.extend(game.others_fun())

        if game.est_bracket is not None:
            est_brackets.append(game.est_bracket)

        expected_wins += 1 / players_in_game(game)

    return Stats(
        total_games=total_games,
        wins=wins,
        losses=losses,
        win_rate=wins / total_games if total_games else 0,
        expected_winrate=expected_wins / total_games if total_games else 0,
        avg_fun_self=average(fun_self),
        std_fun_self=standard_deviation(fun_self),
        avg_fun_others=average(fun_others),
        avg_fun_wins=average(fun_wins),
        avg_fun_losses=average(fun_losses),
        avg_est_bracket=average(est_brackets),
    )


def _optional_float(value) -> Optional[float]:
    if value is None:
        return None
    out = float(value)
    return None if math.isnan(out) else out


def stats_from_sums(
    *,
    total_games: int,
    wins: int,
    losses: int,
    expected_wins: Optional[float],
    fun_count: int,
    fun_sum: Optional[float],
    fun_square_sum: Optional[float],
    others_count: int,
    others_sum: Optional[float],
    avg_fun_wins: Optional[float],
    avg_fun_losses: Optional[float],
    avg_est_bracket: Optional[float],
) -> Optional[Stats]:
    """Build ``Stats`` from database aggregates; ``None`` when there are no games.

    The sample deviation is recovered from count, sum and sum of squares so the
    query stays portable (SQLite has no ``stddev_samp``).
    """
    total_games = int(total_games or 0)
    if not total_games:
        return None
    wins = int(wins or 0)
    fun_count = int(fun_count or 0)
    others_count = int(others_count or 0)

    avg_fun_self = None
    std_fun_self = None
    if fun_count:
        total = float(fun_sum or 0)
        avg_fun_self = total / fun_count
        if fun_count > 1:
            variance = (float(fun_square_sum or 0) - total * total / fun_count) / (fun_count - 1)
            std_fun_self = math.sqrt(max(variance, 0.0))

    return Stats(
        total_games=total_games,
        wins=wins,
        losses=int(losses or 0),
        win_rate=wins / total_games,
        expected_winrate=float(expected_wins or 0) / total_games,
        avg_fun_self=avg_fun_self,
        std_fun_self=std_fun_self,
        avg_fun_others=float(others_sum or 0) / others_count if others_count else None,
        avg_fun_wins=_optional_float(avg_fun_wins),
        avg_fun_losses=_optional_float(avg_fun_losses),
        avg_est_bracket=_optional_float(avg_est_bracket),
    )


def with_stats_from_games(deck: Deck) -> Deck:
    """Return the deck with ``stats`` derived from its games when stats are missing."""
    if not deck.games or deck.stats is not None:
        return deck
    return replace(deck, stats=stats_from_games(deck.games))


def deck_stats_rows(games: Iterable[Game], deck_ids_by_name: Mapping[str, Optional[str]] | None = None) -> List[DeckStatsRow]:
    """Per-deck rows for the dashboard, most played first."""
    deck_ids_by_name = deck_ids_by_name or {}
    grouped: Dict[str, Dict[str, list]] = {}

    for game in games:
        name = game.deck_name.strip()
        if not name:
            continue
        bucket = grouped.setdefault(name, {"games": [], "fun_self": [], "fun_others": []})
        bucket["games"].append(game)
        if game.fun is not None:
            bucket["fun_self"].append(game.fun)
        bucket["fun_others"].extend(game.others_fun())

    rows: List[DeckStatsRow] = []
    for name, bucket in grouped.items():
        played = len(bucket["games"])
        wins = sum(1 for g in bucket["games"] if is_win(g.winner))
        losses = sum(1 for g in bucket["games"] if is_loss(g.winner))
        rows.append(
            DeckStatsRow(
                id=deck_ids_by_name.get(name) or name,
                name=name,
                games=played,
                wins=wins,
                losses=losses,
                win_rate=(wins / played) * 100 if played else 0,
                avg_fun_self=average(bucket["fun_self"]),
                avg_fun_others=average(bucket["fun_others"]),
            )
        )

    apply_usage_percent(rows)
    rows.sort(key=lambda row: (-row.games, row.name))
    return rows


def apply_usage_percent(rows: List[DeckStatsRow]) -> None:
    total = sum(row.games for row in rows)
    for row in rows:
        row.usage_percent = (row.games / total) * 100 if total > 0 else 0


def dashboard_stats(decks: Iterable[Deck], games: Sequence[Game]) -> DashboardStats:
    """Account-wide stats plus per-deck rows computed in memory."""
    if not games:
        return DashboardStats(stats=None, deck_stats=[])
    deck_ids = {deck.deck_name: deck.id for deck in decks}
    return DashboardStats(stats=stats_from_games(games), deck_stats=deck_stats_rows(games, deck_ids))

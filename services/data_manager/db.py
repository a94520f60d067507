"""SQL-backed data manager (production backend)."""
from __future__ import annotations

import logging
from typing import Any, List, Optional

from sqlalchemy import case, func, literal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import contains_eager

from extensions import db
from models import Deck as DeckRecord, Game as GameRecord
from services.deck_stats import LOSS_SEATS, apply_usage_percent, stats_from_sums
from services.domain import DashboardStats, Deck, DeckStatsRow, Game, Stats
from services.sheet_rows import deck_from_record, game_from_record
from utils.time import utcnow

from .base import DataManager, DataManagerError, DeckInput, DeckUpdateInput, GameInput, GameUpdateInput

logger = logging.getLogger(__name__)

_WIN = GameRecord.winner == 1
_LOSS = GameRecord.winner.in_(LOSS_SEATS)
_LEGACY_LOSS = GameRecord.winner == 0


def _others_filled(column):
    return case((column.isnot(None), 1), else_=0)


def _stats_columns() -> list:
    """Aggregate expressions shared by the account-wide and per-deck stats queries."""
    players = (
        literal(1)
        + _others_filled(GameRecord.p2_fun)
        + _others_filled(GameRecord.p3_fun)
        + _others_filled(GameRecord.p4_fun)
    )
    return [
        func.count(GameRecord.id).label("total_games"),
        func.coalesce(func.sum(case((_WIN, 1), else_=0)), 0).label("wins"),
        func.coalesce(func.sum(case((_LOSS, 1), else_=0)), 0).label("losses"),
        func.sum(literal(1.0) / players).label("expected_wins"),
        func.count(GameRecord.fun).label("fun_count"),
        func.sum(GameRecord.fun).label("fun_sum"),
        func.sum(GameRecord.fun * GameRecord.fun).label("fun_square_sum"),
        (
            func.count(GameRecord.p2_fun) + func.count(GameRecord.p3_fun) + func.count(GameRecord.p4_fun)
        ).label("others_count"),
        (
            func.coalesce(func.sum(GameRecord.p2_fun), 0)
            + func.coalesce(func.sum(GameRecord.p3_fun), 0)
            + func.coalesce(func.sum(GameRecord.p4_fun), 0)
        ).label("others_sum"),
        func.avg(case((_WIN, GameRecord.fun))).label("avg_fun_wins"),
        func.avg(case((_LEGACY_LOSS, GameRecord.fun))).label("avg_fun_losses"),
        func.avg(GameRecord.est_bracket).label("avg_est_bracket"),
    ]


def _stats_from_row(row: Any) -> Optional[Stats]:
    return stats_from_sums(
        total_games=row.total_games,
        wins=row.wins,
        losses=row.losses,
        expected_wins=row.expected_wins,
        fun_count=row.fun_count,
        fun_sum=row.fun_sum,
        fun_square_sum=row.fun_square_sum,
        others_count=row.others_count,
        others_sum=row.others_sum,
        avg_fun_wins=row.avg_fun_wins,
        avg_fun_losses=row.avg_fun_losses,
        avg_est_bracket=row.avg_est_bracket,
    )


class DbDataManager(DataManager):
    """Decks and games stored in SQL, scoped to one user id."""

    name = "db"

    def __init__(self, user_id: int):
        if user_id is None:
            raise DataManagerError("Not authenticated", 401)
        self.user_id = user_id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def _deck_query(self):
        return DeckRecord.query.filter(DeckRecord.user_id == self.user_id)

    def _game_query(self):
        return GameRecord.query.filter(GameRecord.user_id == self.user_id)

    def get_decks(self) -> List[Deck]:
        records = self._deck_query().order_by(DeckRecord.name.asc()).all()
        return [deck_from_record(record) for record in records]

    def get_games(self) -> List[Game]:
        records = (
            self._game_query()
            .join(DeckRecord, DeckRecord.id == GameRecord.deck_id)
            .options(contains_eager(GameRecord.deck))
            .order_by(GameRecord.created_at.asc(), GameRecord.id.asc())
            .all()
        )
        return [game_from_record(record) for record in records]

    def get_deck_by_id(self, deck_id: str) -> Optional[Deck]:
        record = self._deck_query().filter(DeckRecord.id == deck_id).first()
        if record is None:
            return None

        deck = deck_from_record(record)
        game_records = (
            self._game_query()
            .filter(GameRecord.deck_id == record.id)
            .order_by(GameRecord.created_at.asc(), GameRecord.id.asc())
            .all()
        )
        games = [game_from_record(row, deck=deck) for row in game_records]
        stats = self._stats_for(GameRecord.deck_id == record.id)
        return Deck(
            id=deck.id,
            deck_name=deck.deck_name,
            target_bracket=deck.target_bracket,
            summary=deck.summary,
            archidekt_link=deck.archidekt_link,
            stats=stats,
            games=games,
        )

    def _stats_for(self, *criteria) -> Optional[Stats]:
        row = (
            db.session.query(*_stats_columns())
            .filter(GameRecord.user_id == self.user_id, *criteria)
            .one()
        )
        return _stats_from_row(row)

    def get_dashboard_stats(self) -> DashboardStats:
        stats = self._stats_for()
        if stats is None:
            return DashboardStats(stats=None, deck_stats=[])

        games_played = func.count(GameRecord.id)
        rows = (
            db.session.query(DeckRecord.id, DeckRecord.name, *_stats_columns())
            .join(
                GameRecord,
                (GameRecord.deck_id == DeckRecord.id) & (GameRecord.user_id == self.user_id),
            )
            .filter(DeckRecord.user_id == self.user_id)
            .group_by(DeckRecord.id, DeckRecord.name)
            .order_by(games_played.desc(), DeckRecord.name.asc())
            .all()
        )

        deck_stats: List[DeckStatsRow] = []
        for row in rows:
            per_deck = _stats_from_row(row)
            if per_deck is None:
                continue
            deck_stats.append(
                DeckStatsRow(
                    id=str(row.id),
                    name=row.name,
                    games=per_deck.total_games,
                    wins=per_deck.wins,
                    losses=per_deck.losses,
                    win_rate=per_deck.win_rate * 100,
                    avg_fun_self=per_deck.avg_fun_self,
                    avg_fun_others=per_deck.avg_fun_others,
                )
            )
        apply_usage_percent(deck_stats)
        return DashboardStats(stats=stats, deck_stats=deck_stats)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def _commit(self, action: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.exception("Database write failed", extra={"action": action, "user_id": self.user_id})
            raise DataManagerError(f"Failed to {action}", 500) from exc

    def append_deck(self, data: DeckInput) -> None:
        exists = self._deck_query().filter(DeckRecord.name == data.deck_name).first()
        if exists is not None:
            raise DataManagerError("Deck already exists", 409)
        db.session.add(
            DeckRecord(
                user_id=self.user_id,
                name=data.deck_name,
                target_bracket=data.target_bracket,
                summary=data.summary,
                archidekt_link=data.archidekt_link,
            )
        )
        self._commit("append deck")

    def append_game(self, data: GameInput) -> None:
        deck = self._deck_query().filter(DeckRecord.name == data.deck_name).first()
        if deck is None:
            raise DataManagerError("Deck not found", 404)
        db.session.add(
            GameRecord(
                user_id=self.user_id,
                deck_id=deck.id,
                winner=data.winner,
                fun=data.fun,
                p2_fun=data.p2_fun,
                p3_fun=data.p3_fun,
                p4_fun=data.p4_fun,
                notes=data.notes,
                est_bracket=data.est_bracket,
            )
        )
        self._commit("append game")

    def update_deck(self, data: DeckUpdateInput) -> None:
        current = self._deck_query().filter(DeckRecord.id == data.deck_id).first()
        if current is None:
            raise DataManagerError("Deck not found", 404)
        if data.original_name and current.name != data.original_name:
            raise DataManagerError("Deck was changed since it was loaded", 409)
        clash = (
            self._deck_query()
            .filter(DeckRecord.name == data.deck_name, DeckRecord.id != data.deck_id)
            .first()
        )
        if clash is not None:
            raise DataManagerError("Deck already exists", 409)
        self._deck_query().filter(DeckRecord.id == current.id).update(
            {
                DeckRecord.name: data.deck_name,
                DeckRecord.target_bracket: data.target_bracket,
                DeckRecord.summary: data.summary,
                DeckRecord.archidekt_link: data.archidekt_link,
                DeckRecord.updated_at: utcnow(),
            }
        )
        self._commit("update deck")

    def update_game(self, data: GameUpdateInput) -> None:
        updated = (
            self._game_query()
            .filter(GameRecord.id == data.game_id)
            .update(
                {
                    GameRecord.winner: data.winner,
                    GameRecord.fun: data.fun,
                    GameRecord.p2_fun: data.p2_fun,
                    GameRecord.p3_fun: data.p3_fun,
                    GameRecord.p4_fun: data.p4_fun,
                    GameRecord.notes: data.notes,
                    GameRecord.est_bracket: data.est_bracket,
                }
            )
        )
        if not updated:
            db.session.rollback()
            raise DataManagerError("Game not found", 404)
        self._commit("update game")

    def delete_game(self, game_id: str) -> None:
        deleted = self._game_query().filter(GameRecord.id == game_id).delete()
        if not deleted:
            db.session.rollback()
            raise DataManagerError("Game not found", 404)
        self._commit("delete game")

    def delete_deck(self, deck_id: str, deck_name: str) -> int:
        deck = self._deck_query().filter(DeckRecord.id == deck_id).first()
        if deck is None:
            raise DataManagerError("Deck not found", 404)
        if deck_name and deck.name != deck_name:
            raise DataManagerError("Deck name does not match deckId", 409)

        deleted_games = (
            self._game_query()
            .filter(GameRecord.deck_id == deck.id)
            .delete()
        )
        self._deck_query().filter(DeckRecord.id == deck.id).delete()
        self._commit("delete deck")
        logger.info(
            "Deleted deck",
            extra={"deck_id": deck_id, "deck_name": deck_name, "deleted_games": deleted_games},
        )
        return int(deleted_games or 0)

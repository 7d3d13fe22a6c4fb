"""
database.py
-----------

This module encapsulates all interactions with the local SQLite database
used to persist trade data. Keeping database logic here makes it easy to
change the storage backend (see ``supabase.py`` for the hosted one)
without affecting other parts of the application.

Every method takes the owner's id explicitly and filters on it; the store
never decides who the current user is.
"""

import logging
import sqlite3
import uuid
from dataclasses import replace
from datetime import datetime
from typing import List, Optional

from .events import ChangeFeed, TradeChange, INSERT, UPDATE, DELETE
from .models import RiskCalculation, TradeDraft, TradeRecord, utcnow

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for persistence failures."""


class TradeNotFound(StoreError):
    def __init__(self, trade_id: Optional[str]) -> None:
        super().__init__(f"trade {trade_id} not found")
        self.trade_id = trade_id


class TradeJournalDB:
    """SQLite-backed repository for trades and saved risk calculations."""

    def __init__(self, db_path: str = "tradebook.db", feed: Optional[ChangeFeed] = None) -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.feed = feed or ChangeFeed()
        self._create_tables()

    # ---------- schema ----------
    def _create_tables(self) -> None:
        """Create required tables (trades, risk_calculations) and indexes."""
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS trades (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    asset TEXT NOT NULL,
                    direction TEXT NOT NULL CHECK (direction IN ('BUY','SELL')),
                    entry_price REAL NOT NULL,
                    quantity REAL NOT NULL,
                    stop_loss REAL,
                    take_profit REAL,
                    fees REAL NOT NULL DEFAULT 0,
                    status TEXT NOT NULL CHECK (status IN ('open','closed','cancelled')),
                    profit_loss REAL,
                    notes TEXT,
                    created_at TEXT NOT NULL, -- ISO8601 UTC
                    updated_at TEXT NOT NULL
                )
                """
            )
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS risk_calculations (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    symbol TEXT NOT NULL,
                    account_balance REAL NOT NULL,
                    risk_percentage REAL NOT NULL,
                    entry_price REAL NOT NULL,
                    stop_loss REAL NOT NULL,
                    take_profit REAL,
                    position_size REAL NOT NULL,
                    risk_amount REAL NOT NULL,
                    reward_amount REAL,
                    risk_reward_ratio REAL,
                    created_at TEXT NOT NULL
                )
                """
            )
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_trades_owner_created ON trades(owner_id, created_at)"
            )
            self.conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_risk_owner_created ON risk_calculations(owner_id, created_at)"
            )

    # ---------- trades ----------
    def add_trade(self, owner_id: str, draft: TradeDraft) -> TradeRecord:
        """Insert a new trade built from a validated draft and return it."""
        now = utcnow()
        trade = replace(
            draft.to_record(owner_id),
            id=uuid.uuid4().hex,
            created_at=now,
            updated_at=now,
        )
        row = trade.to_row()
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO trades
                    (id, owner_id, asset, direction, entry_price, quantity, stop_loss,
                     take_profit, fees, status, profit_loss, notes, created_at, updated_at)
                VALUES
                    (:id, :owner_id, :asset, :direction, :entry_price, :quantity, :stop_loss,
                     :take_profit, :fees, :status, :profit_loss, :notes, :created_at, :updated_at)
                """,
                row,
            )
        logger.info("trade %s added for owner %s", trade.id, owner_id)
        self.feed.publish(TradeChange(INSERT, "trades", owner_id, trade.id))
        return trade

    def update_trade(self, owner_id: str, trade: TradeRecord) -> TradeRecord:
        """Replace the stored trade with ``trade`` (matched by id and owner)."""
        existing = self.get_trade(owner_id, trade.id)
        if existing is None:
            raise TradeNotFound(trade.id)
        updated = replace(
            trade,
            owner_id=owner_id,
            asset=trade.asset.strip().upper(),
            created_at=existing.created_at,
            updated_at=utcnow(),
        )
        row = updated.to_row()
        with self.conn:
            self.conn.execute(
                """
                UPDATE trades SET
                    asset = :asset, direction = :direction, entry_price = :entry_price,
                    quantity = :quantity, stop_loss = :stop_loss, take_profit = :take_profit,
                    fees = :fees, status = :status, profit_loss = :profit_loss,
                    notes = :notes, updated_at = :updated_at
                WHERE id = :id AND owner_id = :owner_id
                """,
                row,
            )
        self.feed.publish(TradeChange(UPDATE, "trades", owner_id, updated.id))
        return updated

    def delete_trade(self, owner_id: str, trade_id: str) -> bool:
        """Permanently delete a trade. Returns False if nothing matched."""
        with self.conn:
            cur = self.conn.execute(
                "DELETE FROM trades WHERE id = ? AND owner_id = ?", (trade_id, owner_id)
            )
        deleted = cur.rowcount > 0
        if deleted:
            logger.info("trade %s deleted for owner %s", trade_id, owner_id)
            self.feed.publish(TradeChange(DELETE, "trades", owner_id, trade_id))
        return deleted

    def get_trade(self, owner_id: str, trade_id: Optional[str]) -> Optional[TradeRecord]:
        if trade_id is None:
            return None
        cur = self.conn.execute(
            "SELECT * FROM trades WHERE id = ? AND owner_id = ?", (trade_id, owner_id)
        )
        row = cur.fetchone()
        return TradeRecord.from_row(dict(row)) if row else None

    def list_trades(self, owner_id: str) -> List[TradeRecord]:
        """Return the owner's trades, newest first."""
        cur = self.conn.execute(
            "SELECT * FROM trades WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC", (owner_id,)
        )
        return [TradeRecord.from_row(dict(r)) for r in cur.fetchall()]

    def trades_between(self, owner_id: str, start_date: datetime, end_date: datetime) -> List[TradeRecord]:
        """Return the owner's trades created within [start_date, end_date]."""
        cur = self.conn.execute(
            """
            SELECT * FROM trades
            WHERE owner_id = ? AND created_at >= ? AND created_at <= ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (owner_id, start_date.isoformat(), end_date.isoformat()),
        )
        return [TradeRecord.from_row(dict(r)) for r in cur.fetchall()]

    # ---------- risk calculations ----------
    def save_risk_calculation(self, calc: RiskCalculation) -> RiskCalculation:
        saved = replace(calc, id=uuid.uuid4().hex, created_at=utcnow())
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO risk_calculations
                    (id, owner_id, symbol, account_balance, risk_percentage, entry_price,
                     stop_loss, take_profit, position_size, risk_amount, reward_amount,
                     risk_reward_ratio, created_at)
                VALUES
                    (:id, :owner_id, :symbol, :account_balance, :risk_percentage, :entry_price,
                     :stop_loss, :take_profit, :position_size, :risk_amount, :reward_amount,
                     :risk_reward_ratio, :created_at)
                """,
                saved.to_row(),
            )
        self.feed.publish(TradeChange(INSERT, "risk_calculations", saved.owner_id, saved.id))
        return saved

    def list_risk_calculations(self, owner_id: str, limit: int = 10) -> List[RiskCalculation]:
        cur = self.conn.execute(
            """
            SELECT * FROM risk_calculations
            WHERE owner_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (owner_id, limit),
        )
        return [RiskCalculation.from_row(dict(r)) for r in cur.fetchall()]

    # ---------- housekeeping ----------
    def close(self) -> None:
        self.conn.close()

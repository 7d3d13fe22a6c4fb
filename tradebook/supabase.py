"""
supabase.py
-----------

Trade store backed by the hosted Postgres backend, spoken to through its
PostgREST interface (``/rest/v1/<table>``). Row-level security is enforced
on the server; we still filter on ``user_id`` in every request so the
client never depends on it.

Remote columns follow the single-table layout: ``asset``, ``trade_type``,
``price``, ``quantity``, ``stop_loss``, ``take_profit``, ``fees``,
``profit_loss``, ``status``, ``notes``, ``user_id``.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import requests

from .database import StoreError, TradeNotFound
from .events import ChangeFeed, TradeChange, INSERT, UPDATE, DELETE
from .models import RiskCalculation, TradeDraft, TradeRecord, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# local field -> remote column
_TRADE_COLUMNS: Dict[str, str] = {
    "id": "id",
    "owner_id": "user_id",
    "asset": "asset",
    "direction": "trade_type",
    "entry_price": "price",
    "quantity": "quantity",
    "stop_loss": "stop_loss",
    "take_profit": "take_profit",
    "fees": "fees",
    "status": "status",
    "profit_loss": "profit_loss",
    "notes": "notes",
    "created_at": "created_at",
    "updated_at": "updated_at",
}

_RISK_COLUMNS: Dict[str, str] = {
    "id": "id",
    "owner_id": "user_id",
    "symbol": "symbol",
    "account_balance": "account_balance_idr",
    "risk_percentage": "risk_percentage",
    "entry_price": "entry_price",
    "stop_loss": "stop_loss",
    "take_profit": "take_profit",
    "position_size": "lot_size",
    "risk_amount": "risk_amount_idr",
    "reward_amount": "reward_amount_idr",
    "risk_reward_ratio": "risk_reward_ratio",
    "created_at": "created_at",
}

# assigned by the server on insert
_SERVER_FIELDS = ("id", "created_at", "updated_at")


@dataclass
class SupabaseError(StoreError):
    status_code: int
    code: Optional[str]
    message: str
    payload: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        code_str = f" [{self.code}]" if self.code else ""
        return f"SupabaseError{code_str}: {self.message} (HTTP {self.status_code})"


def _to_remote(row: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    return {columns[k]: v for k, v in row.items() if k in columns and k not in _SERVER_FIELDS}


def _from_remote(row: Dict[str, Any], columns: Dict[str, str]) -> Dict[str, Any]:
    return {local: row.get(remote) for local, remote in columns.items()}


class SupabaseTradeStore:
    """
    Same interface as TradeJournalDB, over HTTP:
    - api key sent as ``apikey``; the bearer token is the user's access token
      when one is given, otherwise the api key itself
    - ``Prefer: return=representation`` so writes echo the stored row
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        access_token: Optional[str] = None,
        feed: Optional[ChangeFeed] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.feed = feed or ChangeFeed()
        self.session = session or requests.Session()
        self.session.headers.update({
            "apikey": api_key,
            "Authorization": f"Bearer {access_token or api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    # ---------- transport ----------
    def _request(
        self,
        method: str,
        table: str,
        params: Optional[List[Tuple[str, Any]]] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{table}"
        headers = {}
        if method != "GET":
            headers["Prefer"] = "return=representation"
        logger.debug("REQUEST %s /%s params=%s", method, table, params)

        try:
            r = self.session.request(
                method, url, params=params, json=payload, headers=headers, timeout=DEFAULT_TIMEOUT
            )
        except requests.Timeout as e:
            logger.warning("timeout calling %s /%s", method, table)
            raise SupabaseError(0, "timeout", f"Timeout calling /{table}") from e
        except requests.ConnectionError as e:
            logger.warning("network error calling %s /%s: %s", method, table, e)
            raise SupabaseError(0, "connection_error", f"Network error calling /{table}") from e

        if r.status_code >= 400:
            try:
                detail = r.json()
            except ValueError:
                detail = {"text": r.text}
            code = detail.get("code") if isinstance(detail, dict) else None
            msg = detail.get("message") if isinstance(detail, dict) else None
            logger.warning("HTTP %s on %s /%s | code=%s msg=%s", r.status_code, method, table, code, msg)
            raise SupabaseError(r.status_code, code, msg or "HTTP error", detail)

        if not r.content:
            return []
        try:
            data = r.json()
        except ValueError:
            raise SupabaseError(r.status_code, "bad_json", "Response not JSON", {"text": r.text[:200]})
        return data if isinstance(data, list) else [data]

    @staticmethod
    def _trade(row: Dict[str, Any]) -> TradeRecord:
        return TradeRecord.from_row(_from_remote(row, _TRADE_COLUMNS))

    # ---------- trades ----------
    def list_trades(self, owner_id: str) -> List[TradeRecord]:
        rows = self._request("GET", "trades", params=[
            ("select", "*"),
            ("user_id", f"eq.{owner_id}"),
            ("order", "created_at.desc"),
        ])
        return [self._trade(r) for r in rows]

    def get_trade(self, owner_id: str, trade_id: Optional[str]) -> Optional[TradeRecord]:
        if trade_id is None:
            return None
        rows = self._request("GET", "trades", params=[
            ("select", "*"),
            ("id", f"eq.{trade_id}"),
            ("user_id", f"eq.{owner_id}"),
        ])
        return self._trade(rows[0]) if rows else None

    def trades_between(self, owner_id: str, start_date: datetime, end_date: datetime) -> List[TradeRecord]:
        rows = self._request("GET", "trades", params=[
            ("select", "*"),
            ("user_id", f"eq.{owner_id}"),
            ("created_at", f"gte.{start_date.isoformat()}"),
            ("created_at", f"lte.{end_date.isoformat()}"),
            ("order", "created_at.desc"),
        ])
        return [self._trade(r) for r in rows]

    def add_trade(self, owner_id: str, draft: TradeDraft) -> TradeRecord:
        payload = _to_remote(draft.to_record(owner_id).to_row(), _TRADE_COLUMNS)
        rows = self._request("POST", "trades", payload=payload)
        if not rows:
            raise SupabaseError(201, "empty", "Insert returned no row")
        trade = self._trade(rows[0])
        logger.info("trade %s added for owner %s", trade.id, owner_id)
        self.feed.publish(TradeChange(INSERT, "trades", owner_id, trade.id))
        return trade

    def update_trade(self, owner_id: str, trade: TradeRecord) -> TradeRecord:
        row = replace(trade, owner_id=owner_id, asset=trade.asset.strip().upper()).to_row()
        payload = _to_remote(row, _TRADE_COLUMNS)
        payload["updated_at"] = utcnow().isoformat()
        rows = self._request("PATCH", "trades", params=[
            ("id", f"eq.{trade.id}"),
            ("user_id", f"eq.{owner_id}"),
        ], payload=payload)
        if not rows:
            raise TradeNotFound(trade.id)
        self.feed.publish(TradeChange(UPDATE, "trades", owner_id, trade.id))
        return self._trade(rows[0])

    def delete_trade(self, owner_id: str, trade_id: str) -> bool:
        rows = self._request("DELETE", "trades", params=[
            ("id", f"eq.{trade_id}"),
            ("user_id", f"eq.{owner_id}"),
        ])
        if rows:
            logger.info("trade %s deleted for owner %s", trade_id, owner_id)
            self.feed.publish(TradeChange(DELETE, "trades", owner_id, trade_id))
        return bool(rows)

    # ---------- risk calculations ----------
    def save_risk_calculation(self, calc: RiskCalculation) -> RiskCalculation:
        payload = _to_remote(calc.to_row(), _RISK_COLUMNS)
        rows = self._request("POST", "risk_calculations", payload=payload)
        if not rows:
            raise SupabaseError(201, "empty", "Insert returned no row")
        saved = RiskCalculation.from_row(_from_remote(rows[0], _RISK_COLUMNS))
        self.feed.publish(TradeChange(INSERT, "risk_calculations", saved.owner_id, saved.id))
        return saved

    def list_risk_calculations(self, owner_id: str, limit: int = 10) -> List[RiskCalculation]:
        rows = self._request("GET", "risk_calculations", params=[
            ("select", "*"),
            ("user_id", f"eq.{owner_id}"),
            ("order", "created_at.desc"),
            ("limit", limit),
        ])
        return [RiskCalculation.from_row(_from_remote(r, _RISK_COLUMNS)) for r in rows]

    # ---------- housekeeping ----------
    def close(self) -> None:
        self.session.close()

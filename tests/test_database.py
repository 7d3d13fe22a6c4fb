"""
Tests for the SQLite trade store.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from tradebook.database import TradeJournalDB, TradeNotFound
from tradebook.events import ChangeFeed, INSERT, UPDATE, DELETE
from tradebook.models import RiskCalculation, TradeDraft, TradeStatus


@pytest.fixture
def db(tmp_path):
    store = TradeJournalDB(str(tmp_path / "journal.db"))
    yield store
    store.close()


def _draft(**overrides):
    base = dict(asset="xauusd", direction="BUY", entry_price=2300.0, quantity=0.5, fees=1.0)
    base.update(overrides)
    return TradeDraft(**base)


def test_add_assigns_id_and_timestamps(db):
    trade = db.add_trade("u1", _draft())

    assert trade.id
    assert trade.asset == "XAUUSD"
    assert trade.status is TradeStatus.OPEN
    assert trade.created_at is not None
    assert trade.created_at == trade.updated_at
    assert db.get_trade("u1", trade.id) == trade


def test_list_is_newest_first(db):
    first = db.add_trade("u1", _draft(asset="AAA"))
    second = db.add_trade("u1", _draft(asset="BBB"))

    assert [t.id for t in db.list_trades("u1")] == [second.id, first.id]


def test_owner_isolation(db):
    mine = db.add_trade("u1", _draft())
    db.add_trade("u2", _draft(asset="EURUSD"))

    assert [t.id for t in db.list_trades("u1")] == [mine.id]
    assert db.get_trade("u2", mine.id) is None
    assert db.delete_trade("u2", mine.id) is False
    with pytest.raises(TradeNotFound):
        db.update_trade("u2", mine.close(10.0))
    assert db.get_trade("u1", mine.id).is_open


def test_update_keeps_created_at(db):
    trade = db.add_trade("u1", _draft())
    updated = db.update_trade("u1", replace(trade.close(42.0), asset=" gold "))

    stored = db.get_trade("u1", trade.id)
    assert stored == updated
    assert stored.asset == "GOLD"
    assert stored.status is TradeStatus.CLOSED
    assert stored.profit_loss == 42.0
    assert stored.created_at == trade.created_at
    assert stored.updated_at >= trade.updated_at


def test_delete(db):
    trade = db.add_trade("u1", _draft())

    assert db.delete_trade("u1", trade.id) is True
    assert db.get_trade("u1", trade.id) is None
    assert db.delete_trade("u1", trade.id) is False


def test_get_with_no_id(db):
    assert db.get_trade("u1", None) is None


def test_trades_between(db):
    trade = db.add_trade("u1", _draft())
    now = datetime.now(timezone.utc)

    inside = db.trades_between("u1", now - timedelta(days=1), now + timedelta(days=1))
    before = db.trades_between("u1", now - timedelta(days=3), now - timedelta(days=2))

    assert [t.id for t in inside] == [trade.id]
    assert before == []


def test_writes_publish_changes(tmp_path):
    feed = ChangeFeed()
    seen = []
    feed.subscribe(seen.append)
    store = TradeJournalDB(str(tmp_path / "feed.db"), feed=feed)
    try:
        trade = store.add_trade("u1", _draft())
        store.update_trade("u1", trade.cancel())
        store.delete_trade("u1", trade.id)
        store.delete_trade("u1", trade.id)
    finally:
        store.close()

    assert [(c.action, c.table, c.owner_id, c.record_id) for c in seen] == [
        (INSERT, "trades", "u1", trade.id),
        (UPDATE, "trades", "u1", trade.id),
        (DELETE, "trades", "u1", trade.id),
    ]


def test_data_survives_reopen(tmp_path):
    path = str(tmp_path / "persist.db")
    store = TradeJournalDB(path)
    trade = store.add_trade("u1", _draft(notes="first entry"))
    store.close()

    reopened = TradeJournalDB(path)
    try:
        assert reopened.get_trade("u1", trade.id) == trade
    finally:
        reopened.close()


def _calc(owner_id="u1", symbol="XAUUSD"):
    return RiskCalculation(
        owner_id=owner_id, symbol=symbol, account_balance=10000.0, risk_percentage=2.0,
        entry_price=2000.0, stop_loss=1995.0, position_size=40.0, risk_amount=200.0,
        take_profit=2010.0, reward_amount=400.0, risk_reward_ratio=2.0,
    )


def test_risk_calculation_history(db):
    for i in range(3):
        db.save_risk_calculation(_calc(symbol=f"SYM{i}"))
    db.save_risk_calculation(_calc(owner_id="u2"))

    history = db.list_risk_calculations("u1", limit=2)

    assert [c.symbol for c in history] == ["SYM2", "SYM1"]
    assert history[0].id and history[0].created_at is not None
    assert history[0].reward_amount == 400.0
    assert len(db.list_risk_calculations("u2")) == 1

"""
app.py
------

Flask web application for the trading journal. Traders add, edit, close
and cancel trades, review performance statistics, size positions with the
risk calculator and chat with the scripted assistant. Business logic lives
in the other modules (models, validation, analytics, risk, assistant); this
module only wires them to HTTP and to the configured store.

To run the application:
    1. Install the package (``pip install -e .``).
    2. Execute ``python -m tradebook.app``.
    3. Navigate to http://localhost:5004 in your web browser.

Set TJ_STORE=supabase together with SUPABASE_URL and SUPABASE_KEY to keep
trades in the hosted backend instead of the local SQLite file.
"""
import csv
import io
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from flask import (
    Flask, render_template, request, redirect, url_for,
    flash, jsonify, Response, g, session
)
from werkzeug.exceptions import BadRequest

from .analytics import compute_portfolio_stats, equity_curve, realized_pnl
from .assistant import reply, welcome
from .config import Config
from .database import StoreError, TradeJournalDB, TradeNotFound
from .events import TradeChange
from .formatting import format_currency, format_percent, format_profit_factor
from .logging_config import setup_logging, setup_request_id_middleware
from .models import InvalidTransition, TradeDraft, TradeRecord, check_transition
from .risk import calculate_position_size
from .supabase import SupabaseTradeStore
from .validation import validate_trade

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "id", "asset", "direction", "entry_price", "quantity", "stop_loss", "take_profit",
    "fees", "status", "profit_loss", "notes", "created_at", "updated_at",
]

RISK_DEFAULTS = {
    "symbol": "XAUUSD",
    "account_balance": "10000",
    "risk_percentage": "2",
    "entry_price": "",
    "stop_loss": "",
    "take_profit": "",
}
RISK_SYMBOLS = ["XAUUSD", "EURUSD", "GBPUSD", "USDJPY", "USDCHF", "AUDUSD", "USDCAD"]


def create_store(config: Config):
    """Build the persistence collaborator selected by TJ_STORE."""
    if config.TJ_STORE == "supabase":
        return SupabaseTradeStore(config.SUPABASE_URL, config.SUPABASE_KEY)
    return TradeJournalDB(config.TJ_DB)


def _parse_float(form: Mapping[str, Any], key: str) -> Optional[float]:
    raw = form.get(key)
    if isinstance(raw, str):
        raw = raw.strip()
    if raw is None or raw == "":
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise BadRequest(f"{key.replace('_', ' ').capitalize()} must be a number")
    if math.isnan(value) or math.isinf(value):
        raise BadRequest(f"{key.replace('_', ' ').capitalize()} must be a number")
    return value


def _risk_inputs(form: Mapping[str, Any]) -> Tuple[Dict[str, Optional[float]], List[str]]:
    """Parse the risk calculator form; returns (values, errors)."""
    values: Dict[str, Optional[float]] = {}
    errors: List[str] = []
    for key in ("account_balance", "risk_percentage", "entry_price", "stop_loss", "take_profit"):
        try:
            values[key] = _parse_float(form, key)
        except BadRequest as e:
            errors.append(e.description)
            values[key] = None
    if not (values["account_balance"] or 0) > 0:
        errors.append("Account balance must be greater than 0")
    pct = values["risk_percentage"]
    if pct is None or not 0 < pct <= 100:
        errors.append("Risk percentage must be between 0 and 100")
    if not (values["entry_price"] or 0) > 0:
        errors.append("Entry price must be greater than 0")
    if not (values["stop_loss"] or 0) > 0:
        errors.append("Stop loss must be greater than 0")
    if values["take_profit"] is not None and not values["take_profit"] > 0:
        errors.append("Take profit must be greater than 0")
    return values, errors


def _parse_day(value: str, end: bool = False) -> datetime:
    day = datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    if end:
        day = day.replace(hour=23, minute=59, second=59, microsecond=999999)
    return day


def create_app(config: Union[Config, Mapping[str, Any], None] = None, store=None):
    if config is None:
        config = Config.from_env()
    elif not isinstance(config, Config):
        config = Config.from_env().override(config)
    config.validate()

    app = Flask(__name__)
    app.config.from_object(config)
    setup_logging(app)
    setup_request_id_middleware(app)

    db = store if store is not None else create_store(config)
    app.extensions["tradebook_store"] = db

    # bumped on every change so the browser can poll and re-fetch
    versions: Dict[str, int] = defaultdict(int)

    def on_change(change: TradeChange) -> None:
        versions[change.owner_id] += 1
        logger.info("%s on %s (owner=%s id=%s)", change.action, change.table, change.owner_id, change.record_id)

    db.feed.subscribe(on_change)

    currency = config.TJ_CURRENCY
    app.jinja_env.filters["currency"] = lambda v: format_currency(v or 0.0, currency)
    app.jinja_env.filters["profit_factor"] = format_profit_factor
    app.jinja_env.filters["percent"] = format_percent

    # ---------- request context ----------
    @app.before_request
    def load_owner():
        # identity comes from the auth layer in front of us; we only read it
        g.owner_id = (
            request.headers.get("X-User-Id")
            or session.get("owner_id")
            or app.config["TJ_DEFAULT_OWNER"]
        )

    def wants_json() -> bool:
        return request.path.startswith("/api/")

    def load_trade(trade_id: str) -> TradeRecord:
        trade = db.get_trade(g.owner_id, trade_id)
        if trade is None:
            raise TradeNotFound(trade_id)
        return trade

    # ---------- errors ----------
    @app.errorhandler(TradeNotFound)
    def handle_not_found(e):
        if wants_json():
            return jsonify({"error": str(e)}), 404
        flash("Trade not found.", "error")
        return redirect(url_for("index"))

    @app.errorhandler(InvalidTransition)
    def handle_transition(e):
        if wants_json():
            return jsonify({"error": str(e)}), 409
        flash(f"Not allowed: {e}.", "error")
        return redirect(url_for("index"))

    @app.errorhandler(StoreError)
    def handle_store_error(e):
        logger.exception("store failure")
        if wants_json():
            return jsonify({"error": f"Storage unavailable: {e}"}), 502
        return render_template("error.html", title="Error", message=f"Storage unavailable: {e}"), 502

    @app.errorhandler(BadRequest)
    def handle_bad_request(e):
        if wants_json():
            return jsonify({"error": e.description}), 400
        flash(e.description, "error")
        return redirect(request.referrer or url_for("index"))

    # ---------- pages ----------
    @app.route("/")
    def index():
        trades = db.list_trades(g.owner_id)
        stats = compute_portfolio_stats(trades)
        return render_template("index.html", title="Trade History", trades=trades, stats=stats)

    @app.route("/add", methods=["GET", "POST"])
    def add_trade():
        if request.method == "POST":
            draft = TradeDraft.from_form(request.form)
            errors = validate_trade(draft)
            if errors:
                for msg in errors:
                    flash(msg, "error")
                return render_template("trade_form.html", title="Add Trade", form=request.form, action=url_for("add_trade")), 400
            db.add_trade(g.owner_id, draft)
            flash("Trade added.", "success")
            return redirect(url_for("index"))

        return render_template("trade_form.html", title="Add Trade", form={"direction": "BUY", "fees": "0"}, action=url_for("add_trade"))

    @app.route("/trades/<trade_id>/edit", methods=["GET", "POST"])
    def edit_trade(trade_id):
        existing = load_trade(trade_id)
        action = url_for("edit_trade", trade_id=trade_id)
        if request.method == "POST":
            draft = TradeDraft.from_form(request.form)
            errors = validate_trade(draft)
            if errors:
                for msg in errors:
                    flash(msg, "error")
                return render_template("trade_form.html", title="Edit Trade", form=request.form, action=action), 400
            updated = draft.to_record(g.owner_id, trade_id=trade_id)
            check_transition(existing.status, updated.status)
            db.update_trade(g.owner_id, updated)
            flash("Trade updated.", "success")
            return redirect(url_for("index"))

        form = {k: ("" if v is None else v) for k, v in vars(TradeDraft.from_record(existing)).items()}
        return render_template("trade_form.html", title="Edit Trade", form=form, action=action)

    @app.route("/trades/<trade_id>/close", methods=["POST"])
    def close_trade(trade_id):
        trade = load_trade(trade_id)
        exit_price = _parse_float(request.form, "exit_price")
        profit_loss = _parse_float(request.form, "profit_loss")
        if exit_price is not None:
            if exit_price <= 0:
                raise BadRequest("Exit price must be greater than 0")
            profit_loss = realized_pnl(trade.direction, trade.entry_price, exit_price, trade.quantity, trade.fees)
        elif profit_loss is None:
            raise BadRequest("Enter an exit price or a profit/loss to close the trade")
        db.update_trade(g.owner_id, trade.close(profit_loss))
        flash(f"Trade closed at {format_currency(profit_loss, currency)}.", "success")
        return redirect(url_for("index"))

    @app.route("/trades/<trade_id>/cancel", methods=["POST"])
    def cancel_trade(trade_id):
        trade = load_trade(trade_id)
        db.update_trade(g.owner_id, trade.cancel())
        flash("Trade cancelled.", "success")
        return redirect(url_for("index"))

    @app.route("/trades/<trade_id>/delete", methods=["POST"])
    def delete_trade(trade_id):
        if not db.delete_trade(g.owner_id, trade_id):
            raise TradeNotFound(trade_id)
        flash("Trade deleted.", "success")
        return redirect(url_for("index"))

    @app.route("/export", methods=["GET"], endpoint="export")
    def export_trades():
        trades = db.list_trades(g.owner_id)
        out = io.StringIO()
        w = csv.writer(out)
        w.writerow(CSV_COLUMNS)
        for t in trades:
            row = t.to_row()
            row["notes"] = " ".join((t.notes or "").split())
            w.writerow(["" if row[c] is None else row[c] for c in CSV_COLUMNS])
        out.seek(0)
        return Response(
            out.getvalue(),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=trades.csv"},
        )

    @app.route("/metrics", methods=["GET", "POST"])
    def metrics():
        start = request.values.get("start_date", "").strip()
        end = request.values.get("end_date", "").strip()
        if start and end:
            try:
                start_dt, end_dt = _parse_day(start), _parse_day(end, end=True)
            except ValueError:
                raise BadRequest("Dates must be in YYYY-MM-DD format")
            trades = db.trades_between(g.owner_id, start_dt, end_dt)
        else:
            trades = db.list_trades(g.owner_id)

        stats = compute_portfolio_stats(trades)
        curve = equity_curve(trades).to_dict("records")
        return render_template(
            "metrics.html", title="Metrics", stats=stats, curve=curve,
            start_date=start, end_date=end,
        )

    @app.route("/risk", methods=["GET", "POST"])
    def risk():
        form: Mapping[str, Any] = RISK_DEFAULTS
        result = None
        if request.method == "POST":
            form = request.form
            values, errors = _risk_inputs(form)
            if errors:
                for msg in errors:
                    flash(msg, "error")
            else:
                result = calculate_position_size(
                    values["account_balance"],
                    values["risk_percentage"],
                    values["entry_price"],
                    values["stop_loss"],
                    take_profit=values["take_profit"],
                    pip_value=app.config["TJ_PIP_VALUE"],
                )
                if form.get("save"):
                    calc = result.to_risk_calculation(
                        g.owner_id,
                        form.get("symbol") or RISK_DEFAULTS["symbol"],
                        values["account_balance"],
                        values["risk_percentage"],
                        values["entry_price"],
                        values["stop_loss"],
                        values["take_profit"],
                    )
                    db.save_risk_calculation(calc)
                    flash("Calculation saved.", "success")

        history = db.list_risk_calculations(g.owner_id)
        return render_template(
            "risk.html", title="Risk Calculator", form=form, result=result,
            history=history, symbols=RISK_SYMBOLS,
        )

    @app.route("/assistant", methods=["GET", "POST"])
    def assistant():
        trades = db.list_trades(g.owner_id)
        conversation = [("assistant", welcome(trades).content)]
        if request.method == "POST":
            message = request.form.get("message", "").strip()
            if message:
                conversation.append(("user", message))
                conversation.append(("assistant", reply(message, trades).content))
        return render_template("assistant.html", title="Trading Assistant", conversation=conversation)

    # ---------- JSON API ----------
    @app.route("/api/trades", methods=["GET"])
    def api_list_trades():
        return jsonify([t.to_row() for t in db.list_trades(g.owner_id)])

    @app.route("/api/trades", methods=["POST"])
    def api_add_trade():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise BadRequest("Expected a JSON object")
        draft = TradeDraft.from_form(data)
        errors = validate_trade(draft)
        if errors:
            return jsonify({"errors": errors}), 422
        trade = db.add_trade(g.owner_id, draft)
        return jsonify(trade.to_row()), 201

    @app.route("/api/stats")
    def api_stats():
        stats = compute_portfolio_stats(db.list_trades(g.owner_id))
        out = stats.to_dict()
        out["display"] = {
            "net_profit": format_currency(stats.net_profit, currency),
            "win_rate": format_percent(stats.win_rate),
            "profit_factor": format_profit_factor(stats.profit_factor),
            "total_fees": format_currency(stats.total_fees, currency),
        }
        return jsonify(out)

    @app.route("/api/equity")
    def api_equity():
        curve = equity_curve(db.list_trades(g.owner_id))
        curve["date"] = curve["date"].astype(str)
        return jsonify(curve.to_dict("records"))

    @app.route("/api/version")
    def api_version():
        return jsonify({"version": versions[g.owner_id]})

    @app.route("/api/assistant", methods=["GET", "POST"])
    def api_assistant():
        trades = db.list_trades(g.owner_id)
        if request.method == "GET":
            answer = welcome(trades)
        else:
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                raise BadRequest("Expected a JSON object")
            message = str(data.get("message") or "").strip()
            if not message:
                raise BadRequest("message is required")
            answer = reply(message, trades)
        return jsonify({"category": answer.category, "content": answer.content})

    return app


# Run directly
if __name__ == "__main__":
    app = create_app()
    app.run(host="0.0.0.0", port=5004, debug=True, use_reloader=False)

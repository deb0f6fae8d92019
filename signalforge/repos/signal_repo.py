"""Signal repository — SQLite CRUD for the signals table."""

import sqlite3
from typing import Optional

from signalforge.errors import PersistenceWriteError
from signalforge.models.signal import Signal
from signalforge.repos.db import get_connection


_REASON_SEP = " | "


def _row_to_signal(row: sqlite3.Row) -> Signal:
    data = dict(row)
    reasons = data.pop("reasons") or ""
    return Signal(**data, reasons=reasons.split(_REASON_SEP) if reasons else [])


class SignalRepo:
    """Data access layer for signal records.

    Write failures are raised as ``PersistenceWriteError``.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    # ── Write ────────────────────────────────────────────────────────────

    def insert_signal(self, signal: Signal) -> int:
        """Insert a new signal, set its ``id`` and return it."""
        try:
            conn = get_connection(self._db_path)
            try:
                cur = conn.execute(
                    """
                    INSERT INTO signals
                        (timestamp, symbol, direction, regime, strategy, entry,
                         stop, target, size, status, score, atr, reasons, timeframe)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        signal.timestamp, signal.symbol, signal.direction,
                        signal.regime, signal.strategy, signal.entry,
                        signal.stop, signal.target, signal.size, signal.status,
                        signal.score, signal.atr, _REASON_SEP.join(signal.reasons),
                        signal.timeframe,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceWriteError(f"insert_signal failed: {exc}") from exc

        signal.id = cur.lastrowid
        return signal.id

    def close_signal(
        self,
        signal_id: int,
        status: str,
        exit_price: float,
        exit_time: str,
        pnl_percent: float,
        pnl_usdt: float,
    ) -> None:
        """Mark an open signal as TP_HIT / SL_HIT with its exit fields."""
        try:
            conn = get_connection(self._db_path)
            try:
                conn.execute(
                    """
                    UPDATE signals
                    SET status = ?, exit_price = ?, exit_time = ?,
                        pnl_percent = ?, pnl_usdt = ?
                    WHERE id = ?
                    """,
                    (status, exit_price, exit_time, pnl_percent, pnl_usdt, signal_id),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceWriteError(f"close_signal failed: {exc}") from exc

    # ── Read ─────────────────────────────────────────────────────────────

    def get_open_signals(self, symbol: Optional[str] = None) -> list[Signal]:
        """Currently open signals, oldest first, optionally for one symbol."""
        conn = get_connection(self._db_path)
        try:
            if symbol:
                rows = conn.execute(
                    "SELECT * FROM signals WHERE status = 'OPEN' AND symbol = ? ORDER BY id",
                    (symbol,),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM signals WHERE status = 'OPEN' ORDER BY id"
                ).fetchall()
            return [_row_to_signal(r) for r in rows]
        finally:
            conn.close()

    def get_signals(
        self,
        limit: int = 50,
        status_filter: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> dict:
        """Return recent signals, newest first.

        Returns:
            ``{"signals": [...], "total": int}``
        """
        conn = get_connection(self._db_path)
        try:
            conditions: list[str] = []
            params: list = []

            if status_filter:
                conditions.append("status = ?")
                params.append(status_filter)
            if symbol:
                conditions.append("symbol = ?")
                params.append(symbol)

            where_clause = ""
            if conditions:
                where_clause = "WHERE " + " AND ".join(conditions)

            rows = conn.execute(
                f"SELECT * FROM signals {where_clause} ORDER BY id DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
            total = conn.execute(
                f"SELECT COUNT(*) FROM signals {where_clause}",
                params,
            ).fetchone()[0]

            signals = []
            for row in rows:
                item = dict(row)
                item["reasons"] = item["reasons"].split(_REASON_SEP) if item["reasons"] else []
                signals.append(item)
            return {"signals": signals, "total": total}
        finally:
            conn.close()

    def get_stats(self) -> dict:
        """Aggregate performance over every stored signal.

        Profit factor is gross wins ÷ gross losses (USDT), or 999 when
        nothing has lost yet.
        """
        conn = get_connection(self._db_path)
        try:
            rows = conn.execute("SELECT status, pnl_usdt FROM signals").fetchall()
        finally:
            conn.close()

        total = len(rows)
        open_count = sum(1 for r in rows if r["status"] == "OPEN")
        winners = [r["pnl_usdt"] or 0.0 for r in rows if r["status"] == "TP_HIT"]
        losers = [r["pnl_usdt"] or 0.0 for r in rows if r["status"] == "SL_HIT"]
        closed = len(winners) + len(losers)

        gross_win = sum(winners)
        gross_loss = abs(sum(losers))
        return {
            "total_signals": total,
            "open_signals": open_count,
            "closed_signals": closed,
            "winners": len(winners),
            "losers": len(losers),
            "win_rate": round(len(winners) / closed * 100, 1) if closed else 0.0,
            "total_pnl_usdt": round(sum(winners) + sum(losers), 2),
            "profit_factor": round(gross_win / gross_loss, 2) if gross_loss > 0 else 999.0,
        }

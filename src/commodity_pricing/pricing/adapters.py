"""Price data collaborator interface and in-memory, SQLite and REST implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Mapping
import json
import re
import sqlite3
import urllib.parse
import urllib.request
import uuid

import pandas as pd

from commodity_pricing.time_utils import to_date


@dataclass(slots=True, frozen=True)
class PricePoint:
    date: date
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "price": self.price}


def _fuzzy_pattern(code: str) -> re.Pattern[str]:
    # underscores in codes act as wildcards, matching the price store's ilike lookup
    parts = [re.escape(part) for part in code.split("_")]
    return re.compile(".*".join(parts), re.IGNORECASE)


def match_instrument_code(code: str, known_codes: Iterable[str], fuzzy: bool = True) -> str | None:
    """Exact match first, then case-insensitive substring match; None when nothing fits."""
    candidates = list(known_codes)
    if code in candidates:
        return code
    if not fuzzy or not code:
        return None
    pattern = _fuzzy_pattern(code)
    for candidate in candidates:
        if pattern.search(candidate):
            return candidate
    return None


class PriceDataAdapter(ABC):
    """Abstract source of instrument ids, historical prices and forward curves."""

    @abstractmethod
    def lookup_instrument_id(self, code: str) -> str | None:
        """Resolve an instrument code to its id, exact then fuzzy."""

    @abstractmethod
    def fetch_historical_prices(self, instrument_id: str, date_from: date, date_to: date) -> list[PricePoint]:
        """Daily prices in [date_from, date_to], oldest first."""

    @abstractmethod
    def fetch_forward_price(self, instrument_id: str, month_start: date) -> float | None:
        """Forward-curve price for the month starting at month_start."""

    @abstractmethod
    def fetch_latest_forward_price(self, instrument_id: str) -> float | None:
        """Price of the furthest-dated forward month available."""

    @abstractmethod
    def fetch_latest_historical_price(self, instrument_id: str, before: date | None = None) -> PricePoint | None:
        """Most recent historical price, optionally strictly before a date."""


class InMemoryPriceAdapter(PriceDataAdapter):
    """Frame-backed adapter for tests and offline reports."""

    def __init__(
        self,
        instruments: Mapping[str, str] | None = None,
        historical: pd.DataFrame | None = None,
        forward: pd.DataFrame | None = None,
        fuzzy: bool = True,
    ) -> None:
        self.instruments: dict[str, str] = dict(instruments or {})
        self.historical = self._normalize(historical, ["instrument_id", "price_date", "price"], "price_date")
        self.forward = self._normalize(forward, ["instrument_id", "forward_month", "price"], "forward_month")
        self.fuzzy = fuzzy

    @staticmethod
    def _normalize(frame: pd.DataFrame | None, columns: list[str], date_col: str) -> pd.DataFrame:
        if frame is None or frame.empty:
            return pd.DataFrame({col: pd.Series(dtype=object) for col in columns})
        out = frame.loc[:, columns].copy()
        out[date_col] = pd.to_datetime(out[date_col]).dt.date
        out["price"] = out["price"].astype(float)
        out["instrument_id"] = out["instrument_id"].astype(str)
        return out.sort_values(date_col).reset_index(drop=True)

    def add_instrument(self, code: str, instrument_id: str | None = None) -> str:
        self.instruments[code] = instrument_id or code
        return self.instruments[code]

    def add_historical_prices(self, instrument_id: str, rows: Iterable[tuple[Any, float]]) -> None:
        records = [{"instrument_id": instrument_id, "price_date": day, "price": price} for day, price in rows]
        if not records:
            return
        frame = pd.DataFrame(records)
        combined = pd.concat([self.historical, frame], ignore_index=True) if not self.historical.empty else frame
        self.historical = self._normalize(combined, ["instrument_id", "price_date", "price"], "price_date")

    def add_forward_price(self, instrument_id: str, month_start: Any, price: float) -> None:
        frame = pd.DataFrame([{"instrument_id": instrument_id, "forward_month": month_start, "price": price}])
        combined = pd.concat([self.forward, frame], ignore_index=True) if not self.forward.empty else frame
        self.forward = self._normalize(combined, ["instrument_id", "forward_month", "price"], "forward_month")

    def lookup_instrument_id(self, code: str) -> str | None:
        matched = match_instrument_code(code, self.instruments.keys(), self.fuzzy)
        return self.instruments[matched] if matched is not None else None

    def fetch_historical_prices(self, instrument_id: str, date_from: date, date_to: date) -> list[PricePoint]:
        frame = self.historical
        mask = (
            (frame["instrument_id"] == instrument_id)
            & (frame["price_date"] >= to_date(date_from))
            & (frame["price_date"] <= to_date(date_to))
        )
        return [PricePoint(date=row.price_date, price=float(row.price)) for row in frame.loc[mask].itertuples()]

    def fetch_forward_price(self, instrument_id: str, month_start: date) -> float | None:
        frame = self.forward
        mask = (frame["instrument_id"] == instrument_id) & (frame["forward_month"] == to_date(month_start))
        rows = frame.loc[mask]
        return float(rows["price"].iloc[0]) if not rows.empty else None

    def fetch_latest_forward_price(self, instrument_id: str) -> float | None:
        rows = self.forward.loc[self.forward["instrument_id"] == instrument_id]
        return float(rows["price"].iloc[-1]) if not rows.empty else None

    def fetch_latest_historical_price(self, instrument_id: str, before: date | None = None) -> PricePoint | None:
        frame = self.historical
        mask = frame["instrument_id"] == instrument_id
        if before is not None:
            mask &= frame["price_date"] < to_date(before)
        rows = frame.loc[mask]
        if rows.empty:
            return None
        last = rows.iloc[-1]
        return PricePoint(date=last["price_date"], price=float(last["price"]))


@dataclass(slots=True)
class SQLitePriceStore(PriceDataAdapter):
    """
    SQLite-backed price store.

    Tables mirror the pricing database: `pricing_instruments`,
    `historical_prices` (one row per instrument and day) and `forward_prices`
    (one row per instrument and first-of-month).
    """

    db_path: str | Path
    fuzzy: bool = True

    def __post_init__(self) -> None:
        self.db_path = str(self.db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _init_db(self) -> None:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS pricing_instruments (
                    id TEXT PRIMARY KEY,
                    instrument_code TEXT NOT NULL UNIQUE,
                    display_name TEXT
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS historical_prices (
                    instrument_id TEXT NOT NULL,
                    price_date TEXT NOT NULL,
                    price REAL NOT NULL,
                    UNIQUE(instrument_id, price_date)
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS forward_prices (
                    instrument_id TEXT NOT NULL,
                    forward_month TEXT NOT NULL,
                    price REAL NOT NULL,
                    UNIQUE(instrument_id, forward_month)
                );
                """
            )

    def add_instrument(self, code: str, instrument_id: str | None = None, display_name: str | None = None) -> str:
        new_id = instrument_id or uuid.uuid4().hex
        with self._connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO pricing_instruments(id, instrument_code, display_name) VALUES (?, ?, ?)",
                (new_id, code, display_name or code),
            )
            row = conn.execute("SELECT id FROM pricing_instruments WHERE instrument_code = ?", (code,)).fetchone()
        return str(row[0])

    def upsert_historical_prices(self, instrument_id: str, rows: Iterable[tuple[Any, float]]) -> int:
        payload = [(instrument_id, to_date(day).isoformat(), float(price)) for day, price in rows]
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO historical_prices(instrument_id, price_date, price) VALUES (?, ?, ?)",
                payload,
            )
        return len(payload)

    def upsert_forward_price(self, instrument_id: str, month_start: Any, price: float) -> None:
        month = to_date(month_start).replace(day=1).isoformat()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO forward_prices(instrument_id, forward_month, price) VALUES (?, ?, ?)",
                (instrument_id, month, float(price)),
            )

    def lookup_instrument_id(self, code: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute("SELECT id FROM pricing_instruments WHERE instrument_code = ?", (code,)).fetchone()
            if row is not None:
                return str(row[0])
            if not self.fuzzy:
                return None
            rows = conn.execute("SELECT instrument_code, id FROM pricing_instruments ORDER BY rowid").fetchall()
        ids = {str(r[0]): str(r[1]) for r in rows}
        matched = match_instrument_code(code, ids.keys(), fuzzy=True)
        return ids[matched] if matched is not None else None

    def fetch_historical_prices(self, instrument_id: str, date_from: date, date_to: date) -> list[PricePoint]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT price_date, price FROM historical_prices
                WHERE instrument_id = ? AND price_date >= ? AND price_date <= ?
                ORDER BY price_date ASC
                """,
                (instrument_id, to_date(date_from).isoformat(), to_date(date_to).isoformat()),
            ).fetchall()
        return [PricePoint(date=date.fromisoformat(r[0]), price=float(r[1])) for r in rows]

    def fetch_forward_price(self, instrument_id: str, month_start: date) -> float | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT price FROM forward_prices WHERE instrument_id = ? AND forward_month = ?",
                (instrument_id, to_date(month_start).isoformat()),
            ).fetchone()
        return float(row[0]) if row is not None else None

    def fetch_latest_forward_price(self, instrument_id: str) -> float | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT price FROM forward_prices WHERE instrument_id = ? ORDER BY forward_month DESC LIMIT 1",
                (instrument_id,),
            ).fetchone()
        return float(row[0]) if row is not None else None

    def fetch_latest_historical_price(self, instrument_id: str, before: date | None = None) -> PricePoint | None:
        query = "SELECT price_date, price FROM historical_prices WHERE instrument_id = ?"
        params: list[Any] = [instrument_id]
        if before is not None:
            query += " AND price_date < ?"
            params.append(to_date(before).isoformat())
        query += " ORDER BY price_date DESC LIMIT 1"
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return PricePoint(date=date.fromisoformat(row[0]), price=float(row[1]))


@dataclass(slots=True)
class RestPriceAdapter(PriceDataAdapter):
    """
    Reads the pricing tables through a PostgREST-style JSON API.

    Each call is a single GET with filters in the query string, e.g.
    `/historical_prices?instrument_id=eq.X&price_date=gte.2024-01-01`.
    """

    rest_base_url: str
    api_key: str | None = None
    timeout_seconds: int = 8
    fuzzy: bool = True

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _get(self, table: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        query = urllib.parse.urlencode(params, doseq=True)
        url = f"{self.rest_base_url.rstrip('/')}/{table}?{query}"
        request = urllib.request.Request(url=url, method="GET", headers=self._headers())
        with urllib.request.urlopen(request, timeout=self.timeout_seconds) as response:
            text = response.read().decode("utf-8")
        return json.loads(text) if text else []

    def lookup_instrument_id(self, code: str) -> str | None:
        rows = self._get("pricing_instruments", [("select", "id"), ("instrument_code", f"eq.{code}")])
        if rows:
            return str(rows[0]["id"])
        if not self.fuzzy or not code:
            return None
        pattern = code.replace("_", "*")
        rows = self._get("pricing_instruments", [("select", "id,instrument_code"), ("instrument_code", f"ilike.*{pattern}*")])
        return str(rows[0]["id"]) if rows else None

    def fetch_historical_prices(self, instrument_id: str, date_from: date, date_to: date) -> list[PricePoint]:
        rows = self._get(
            "historical_prices",
            [
                ("select", "price_date,price"),
                ("instrument_id", f"eq.{instrument_id}"),
                ("price_date", f"gte.{to_date(date_from).isoformat()}"),
                ("price_date", f"lte.{to_date(date_to).isoformat()}"),
                ("order", "price_date.asc"),
            ],
        )
        return [PricePoint(date=to_date(r["price_date"]), price=float(r["price"])) for r in rows]

    def fetch_forward_price(self, instrument_id: str, month_start: date) -> float | None:
        rows = self._get(
            "forward_prices",
            [
                ("select", "price"),
                ("instrument_id", f"eq.{instrument_id}"),
                ("forward_month", f"eq.{to_date(month_start).isoformat()}"),
            ],
        )
        return float(rows[0]["price"]) if rows else None

    def fetch_latest_forward_price(self, instrument_id: str) -> float | None:
        rows = self._get(
            "forward_prices",
            [
                ("select", "price"),
                ("instrument_id", f"eq.{instrument_id}"),
                ("order", "forward_month.desc"),
                ("limit", "1"),
            ],
        )
        return float(rows[0]["price"]) if rows else None

    def fetch_latest_historical_price(self, instrument_id: str, before: date | None = None) -> PricePoint | None:
        params = [("select", "price_date,price"), ("instrument_id", f"eq.{instrument_id}")]
        if before is not None:
            params.append(("price_date", f"lt.{to_date(before).isoformat()}"))
        params += [("order", "price_date.desc"), ("limit", "1")]
        rows = self._get("historical_prices", params)
        if not rows:
            return None
        return PricePoint(date=to_date(rows[0]["price_date"]), price=float(rows[0]["price"]))

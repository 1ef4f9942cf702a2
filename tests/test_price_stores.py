from __future__ import annotations

import json
import urllib.request
from datetime import date

import pytest

from commodity_pricing.pricing import PricePoint, PriceResolver, RestPriceAdapter, SQLitePriceStore


def test_sqlite_store_roundtrip(tmp_path) -> None:
    store = SQLitePriceStore(tmp_path / "prices" / "prices.sqlite")
    ucome = store.add_instrument("Argus UCOME")
    assert store.add_instrument("Argus UCOME") == ucome
    lsgo = store.add_instrument("Platts LSGO", instrument_id="lsgo")
    assert lsgo == "lsgo"

    written = store.upsert_historical_prices(ucome, [("2024-05-02", 1000.0), (date(2024, 5, 3), 1020.0)])
    assert written == 2
    store.upsert_historical_prices(ucome, [("2024-05-03", 1040.0)])
    store.upsert_forward_price(ucome, "2024-07-15", 1250.0)
    store.upsert_forward_price(ucome, date(2024, 8, 1), 1275.0)

    assert store.fetch_historical_prices(ucome, date(2024, 5, 1), date(2024, 5, 31)) == [
        PricePoint(date=date(2024, 5, 2), price=1000.0),
        PricePoint(date=date(2024, 5, 3), price=1040.0),
    ]
    assert store.fetch_forward_price(ucome, date(2024, 7, 1)) == pytest.approx(1250.0)
    assert store.fetch_forward_price(ucome, date(2024, 9, 1)) is None
    assert store.fetch_latest_forward_price(ucome) == pytest.approx(1275.0)
    assert store.fetch_latest_forward_price(lsgo) is None
    assert store.fetch_latest_historical_price(ucome, before=date(2024, 5, 3)) == PricePoint(date(2024, 5, 2), 1000.0)
    assert store.fetch_latest_historical_price(lsgo) is None


def test_sqlite_store_lookup_exact_then_fuzzy(tmp_path) -> None:
    store = SQLitePriceStore(tmp_path / "prices.sqlite")
    ucome = store.add_instrument("Argus UCOME")
    assert store.lookup_instrument_id("Argus UCOME") == ucome
    assert store.lookup_instrument_id("UCOME") == ucome
    assert store.lookup_instrument_id("HVO") is None

    strict = SQLitePriceStore(tmp_path / "prices.sqlite", fuzzy=False)
    assert strict.lookup_instrument_id("UCOME") is None


def test_sqlite_store_feeds_resolver(tmp_path) -> None:
    store = SQLitePriceStore(tmp_path / "prices.sqlite")
    rme = store.add_instrument("Argus RME")
    store.upsert_historical_prices(rme, [("2024-03-01", 1400.0), ("2024-03-04", 1500.0)])
    resolver = PriceResolver(adapter=store, today=date(2024, 6, 14))
    assert resolver.resolve_price("RME", "Mar-24") == pytest.approx(1450.0)


class _FakeResponse:
    def __init__(self, payload: object) -> None:
        self._body = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "_FakeResponse":
        return self

    def __exit__(self, *exc: object) -> None:
        return None


def _install_fake_urlopen(monkeypatch, responses: list[object]) -> list[tuple[str, int, dict[str, str]]]:
    calls: list[tuple[str, int, dict[str, str]]] = []

    def fake_urlopen(request, timeout=None):
        calls.append((request.full_url, timeout, dict(request.header_items())))
        return _FakeResponse(responses.pop(0))

    monkeypatch.setattr(urllib.request, "urlopen", fake_urlopen)
    return calls


def test_rest_adapter_lookup_falls_back_to_ilike(monkeypatch) -> None:
    calls = _install_fake_urlopen(monkeypatch, [[], [{"id": "abc", "instrument_code": "Argus UCOME"}]])
    adapter = RestPriceAdapter(rest_base_url="https://prices.example.com/rest/v1/", api_key="k")

    assert adapter.lookup_instrument_id("UCOME") == "abc"
    assert len(calls) == 2
    first_url, timeout, headers = calls[0]
    assert first_url.startswith("https://prices.example.com/rest/v1/pricing_instruments?")
    assert "instrument_code=eq.UCOME" in first_url
    assert timeout == 8
    assert headers["Apikey"] == "k"
    assert "ilike" in calls[1][0]


def test_rest_adapter_reads_prices(monkeypatch) -> None:
    calls = _install_fake_urlopen(
        monkeypatch,
        [
            [{"price_date": "2024-05-02", "price": 1000}, {"price_date": "2024-05-03", "price": "1010.5"}],
            [{"price": 1250}],
            [],
            [{"price_date": "2024-06-12", "price": 1300}],
        ],
    )
    adapter = RestPriceAdapter(rest_base_url="https://prices.example.com", timeout_seconds=3)

    points = adapter.fetch_historical_prices("abc", date(2024, 5, 1), date(2024, 5, 31))
    assert points == [PricePoint(date(2024, 5, 2), 1000.0), PricePoint(date(2024, 5, 3), 1010.5)]
    assert "price_date=gte.2024-05-01" in calls[0][0]
    assert "price_date=lte.2024-05-31" in calls[0][0]
    assert calls[0][1] == 3

    assert adapter.fetch_forward_price("abc", date(2024, 7, 1)) == pytest.approx(1250.0)
    assert "forward_month=eq.2024-07-01" in calls[1][0]

    assert adapter.fetch_latest_forward_price("abc") is None
    assert "order=forward_month.desc" in calls[2][0]

    latest = adapter.fetch_latest_historical_price("abc", before=date(2024, 6, 14))
    assert latest == PricePoint(date(2024, 6, 12), 1300.0)
    assert "price_date=lt.2024-06-14" in calls[3][0]

"""
Pytest configuration and shared fixtures.
"""

import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Union
from unittest.mock import MagicMock

import pytest

from sicsync.database import get_engine, init_database
from sicsync.registry import LookupResult
from sicsync.storage import CustomerStore, SicCodeStore

SIC_CODES = [
    ("620", "Computer programming, consultancy and related activities"),
    ("4791", "Retail sale via mail order houses or via Internet"),
    ("62012", "Business and domestic software development"),
    ("62020", "Information technology consultancy activities"),
    ("70229", "Management consultancy activities other than financial management"),
]


class FakeRegistryClient:
    """Stands in for RegistryClient; answers from a dict keyed by company number."""

    def __init__(self, results: Dict[str, Union[LookupResult, Exception]] = None):
        self.results = results or {}
        self.calls = []
        self._lock = threading.Lock()

    def lookup(self, normalized_id: str) -> LookupResult:
        with self._lock:
            self.calls.append(normalized_id)
        value = self.results.get(normalized_id, LookupResult(status_code=404))
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Initialized temporary SQLite database."""
    path = tmp_path / "sicsync.db"
    init_database(path)
    return path


@pytest.fixture
def engine(db_path):
    engine = get_engine(db_path)
    yield engine
    engine.dispose()


@pytest.fixture
def code_store(engine) -> SicCodeStore:
    """SIC code table seeded with a handful of codes."""
    store = SicCodeStore(engine=engine)
    store.load_codes(SIC_CODES)
    return store


@pytest.fixture
def customer_store(engine, code_store) -> CustomerStore:
    return CustomerStore(engine=engine)


@pytest.fixture
def add_customer(customer_store):
    """Factory inserting a customer; returns its id."""
    counter = {"n": 0}

    def _add(company_no="01234567", **fields):
        counter["n"] += 1
        fields.setdefault("entity_id", f"CUST-{counter['n']:04d}")
        return customer_store.add(company_no=company_no, **fields)

    return _add


@pytest.fixture
def fake_client() -> FakeRegistryClient:
    return FakeRegistryClient()


@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""

    def _make(status_code: int = 200, body=None, invalid_json: bool = False):
        resp = MagicMock()
        resp.status_code = status_code
        if invalid_json:
            resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        else:
            resp.json.return_value = body if body is not None else {}
        return resp

    return _make


@pytest.fixture
def company_profile() -> dict:
    """Trimmed Companies House company profile."""
    return {
        "company_name": "ACME SOFTWARE LTD",
        "company_number": "01234567",
        "company_status": "active",
        "date_of_creation": "2004-06-01",
        "sic_codes": ["0620", "4791"],
        "type": "ltd",
    }


@pytest.fixture
def old_timestamp() -> datetime:
    return datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def run_logger():
    """Shared module logger with metrics cleared."""
    from sicsync import pipeline

    pipeline.logger.reset_metrics()
    yield pipeline.logger
    pipeline.logger.reset_metrics()

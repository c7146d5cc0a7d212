"""
Record store used by the enrichment pipeline.

CustomerRecord stages field writes in memory; nothing reaches the
database until save(), which applies every staged field in a single
transaction. Classification codes are checked against the SIC code
table when they are set, not when they are saved.
"""

from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .database import Customer, SicCode, get_engine
from .errors import InvalidCodeError
from .models import Candidate

CLASSIFICATION_FIELD = "sic_codes"
CODE_SEPARATOR = ","
KEYWORD_OR = " OR "

RECORD_FIELDS = (
    "entity_id",
    "company_no",
    "sic_codes",
    "sic_description",
    "company_status",
    "balance",
    "overdue_balance",
    "unbilled_orders",
    "is_inactive",
)


def split_codes(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [c for c in value.split(CODE_SEPARATOR) if c]


def diff_dict(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    changed = {}
    for k, nv in new.items():
        ov = old.get(k)
        if ov != nv:
            changed[k] = {"old": ov, "new": nv}
    return changed


class _Store:
    def __init__(self, db_path: Optional[Path] = None, engine: Optional[Engine] = None):
        if engine is None:
            if db_path is None:
                raise ValueError("Either db_path or engine is required")
            engine = get_engine(db_path)
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        return self._session_factory()


class CustomerRecord:
    """In-memory view of one customer with staged field writes."""

    def __init__(self, store: "CustomerStore", record_id: int, values: Dict[str, Any]):
        self.id = record_id
        self._store = store
        self._values = dict(values)
        self._staged: Dict[str, Any] = {}

    def get_value(self, name: str) -> Any:
        self._check_field(name)
        if name in self._staged:
            return self._staged[name]
        return self._values.get(name)

    def get_codes(self) -> List[str]:
        return split_codes(self.get_value(CLASSIFICATION_FIELD))

    def set_field(self, name: str, value: Any) -> None:
        """Stage a field write.

        The classification field accepts a single code, a sequence of
        codes or an empty value (clears it). Unknown codes raise
        InvalidCodeError and leave the staged value unchanged.
        """
        self._check_field(name)
        if name == CLASSIFICATION_FIELD:
            value = self._store.coerce_codes(value)
        self._staged[name] = value

    def changes(self) -> Dict[str, Dict[str, Any]]:
        return diff_dict(self._values, self._staged)

    @property
    def dirty(self) -> bool:
        return bool(self.changes())

    def save(self) -> None:
        self._store.save(self)
        self._values.update(self._staged)
        self._staged.clear()

    @staticmethod
    def _check_field(name: str) -> None:
        if name not in RECORD_FIELDS:
            raise KeyError(f"Unknown customer field: {name}")


class CustomerStore(_Store):
    """Customer table access: candidate query, load and save."""

    def query(
        self,
        *criteria,
        order_by: Sequence = (),
        limit: Optional[int] = None,
    ) -> List[Candidate]:
        stmt = select(Customer)
        if criteria:
            stmt = stmt.where(*criteria)
        if order_by:
            stmt = stmt.order_by(*order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.session() as session:
            rows = session.scalars(stmt).all()
            return [
                Candidate(
                    record_id=row.id,
                    registry_id=row.company_no or "",
                    current_codes=tuple(split_codes(row.sic_codes)),
                    last_modified=row.last_modified,
                    entity_id=row.entity_id,
                )
                for row in rows
            ]

    def get(self, record_id: int) -> CustomerRecord:
        with self.session() as session:
            row = session.get(Customer, record_id)
            if row is None:
                raise KeyError(f"Customer #{record_id} not found")
            values = {name: getattr(row, name) for name in RECORD_FIELDS}
        return CustomerRecord(self, record_id, values)

    def save(self, record: CustomerRecord) -> None:
        changes = record.changes()
        if not changes:
            return
        with self.session() as session, session.begin():
            row = session.get(Customer, record.id)
            if row is None:
                raise KeyError(f"Customer #{record.id} not found")
            for name, change in changes.items():
                setattr(row, name, change["new"])

    def coerce_codes(self, value: Union[None, str, Iterable[str]]) -> Optional[str]:
        """Validate codes and return the stored multi-select value."""
        if value is None or value == "":
            return None
        codes = [value] if isinstance(value, str) else list(value)
        if not codes:
            return None
        known = self.known_codes(codes)
        for code in codes:
            if code not in known:
                raise InvalidCodeError(code)
        return CODE_SEPARATOR.join(codes)

    def known_codes(self, codes: Iterable[str]) -> set:
        with self.session() as session:
            stmt = select(SicCode.code).where(SicCode.code.in_(list(codes)))
            return set(session.scalars(stmt).all())

    def add(self, entity_id: str, company_no: Optional[str] = None, **fields) -> int:
        """Insert a customer and return its id."""
        with self.session() as session, session.begin():
            row = Customer(entity_id=entity_id, company_no=company_no, **fields)
            session.add(row)
            session.flush()
            return row.id


class SicCodeStore(_Store):
    """SIC code reference table with keyword search."""

    def search_by_keywords(self, keywords: str) -> List[str]:
        """Return descriptions of codes matching any OR-separated keyword.

        Descriptions come back in keyword order; repeated and unknown
        keywords are skipped.
        """
        terms = list(dict.fromkeys(t.strip() for t in keywords.split(KEYWORD_OR) if t.strip()))
        if not terms:
            return []
        stmt = select(SicCode.code, SicCode.description).where(SicCode.code.in_(terms))
        with self.session() as session:
            found = dict(session.execute(stmt).all())
        return [found[t] for t in terms if t in found]

    def load_codes(self, rows: Iterable[Tuple[str, str]]) -> int:
        """Insert or update code/description pairs. Returns rows written."""
        count = 0
        with self.session() as session, session.begin():
            for code, description in rows:
                session.merge(SicCode(code=code, description=description))
                count += 1
        return count

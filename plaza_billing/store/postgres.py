"""PostgreSQL-backed billing store."""

import logging
import threading
from contextlib import contextmanager
from datetime import date
from enum import Enum
from typing import Any, Iterator

import psycopg
from psycopg.rows import dict_row

from plaza_billing.config import PostgresConfig
from plaza_billing.exceptions import EntityNotFoundError, PersistenceError
from plaza_billing.models.advance import AdvancePayment
from plaza_billing.models.bill import BillRecord
from plaza_billing.models.enums import (
    AdvanceStatus,
    BillKind,
    Frequency,
    ObligationKind,
    ObligationStatus,
    PaymentStatus,
)
from plaza_billing.models.obligation import RecurringObligationConfig
from plaza_billing.store.base import BillingStore, format_bill_number, parse_bill_sequence

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS obligation_configs (
    config_id      TEXT PRIMARY KEY,
    kind           TEXT NOT NULL,
    title          TEXT NOT NULL,
    amount         NUMERIC(14, 2) NOT NULL CHECK (amount >= 0),
    frequency      TEXT NOT NULL,
    next_due_date  DATE NOT NULL,
    business_id    TEXT,
    description    TEXT,
    reminder_date  DATE,
    auto_generate  BOOLEAN NOT NULL DEFAULT TRUE,
    status         TEXT NOT NULL DEFAULT 'active',
    created_on     DATE,
    anchor_day     SMALLINT
);

CREATE TABLE IF NOT EXISTS bill_records (
    bill_number        TEXT PRIMARY KEY,
    business_id        TEXT,
    kind               TEXT NOT NULL,
    period_date        DATE NOT NULL,
    issue_date         DATE NOT NULL,
    due_date           DATE,
    amount             NUMERIC(14, 2),
    payment_status     TEXT NOT NULL DEFAULT 'pending',
    config_id          TEXT REFERENCES obligation_configs (config_id),
    created_at         TIMESTAMP,
    previous_reading   NUMERIC(14, 2),
    current_reading    NUMERIC(14, 2),
    units_consumed     NUMERIC(14, 2),
    rate_per_unit      NUMERIC(10, 4),
    multiplying_factor NUMERIC(10, 4) NOT NULL DEFAULT 1,
    meter_number       TEXT,
    monthly_rent       NUMERIC(14, 2)
);

CREATE INDEX IF NOT EXISTS idx_bill_records_history
    ON bill_records (business_id, kind, period_date DESC);

CREATE TABLE IF NOT EXISTS advances (
    advance_id    TEXT PRIMARY KEY,
    business_id   TEXT NOT NULL,
    kind          TEXT NOT NULL,
    amount        NUMERIC(14, 2) NOT NULL CHECK (amount >= 0),
    year          SMALLINT NOT NULL,
    month         SMALLINT NOT NULL CHECK (month BETWEEN 1 AND 12),
    advance_date  DATE NOT NULL,
    status        TEXT NOT NULL DEFAULT 'active',
    purpose       TEXT
);
"""

CONFIG_COLUMNS = (
    "config_id",
    "kind",
    "title",
    "amount",
    "frequency",
    "next_due_date",
    "business_id",
    "description",
    "reminder_date",
    "auto_generate",
    "status",
    "created_on",
    "anchor_day",
)

BILL_COLUMNS = (
    "bill_number",
    "business_id",
    "kind",
    "period_date",
    "issue_date",
    "due_date",
    "amount",
    "payment_status",
    "config_id",
    "created_at",
    "previous_reading",
    "current_reading",
    "units_consumed",
    "rate_per_unit",
    "multiplying_factor",
    "meter_number",
    "monthly_rent",
)

ADVANCE_COLUMNS = (
    "advance_id",
    "business_id",
    "kind",
    "amount",
    "year",
    "month",
    "advance_date",
    "status",
    "purpose",
)


def _coerce(enum_cls: type[Enum], value: Any) -> Any:
    """Convert to ``enum_cls`` when possible, keeping unknown values as-is."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def row_to_config(row: dict[str, Any]) -> RecurringObligationConfig:
    """Map an ``obligation_configs`` row to a config."""
    return RecurringObligationConfig(
        config_id=row["config_id"],
        kind=_coerce(ObligationKind, row["kind"]),
        title=row["title"],
        amount=row["amount"],
        frequency=_coerce(Frequency, row["frequency"]),
        next_due_date=row["next_due_date"],
        business_id=row["business_id"],
        description=row["description"],
        reminder_date=row["reminder_date"],
        auto_generate=row["auto_generate"],
        status=_coerce(ObligationStatus, row["status"]),
        created_on=row["created_on"],
        anchor_day=row["anchor_day"],
    )


def row_to_bill(row: dict[str, Any]) -> BillRecord:
    """Map a ``bill_records`` row to a bill."""
    values = {column: row[column] for column in BILL_COLUMNS}
    values["kind"] = BillKind(values["kind"])
    values["payment_status"] = _coerce(PaymentStatus, values["payment_status"])
    return BillRecord(**values)


def row_to_advance(row: dict[str, Any]) -> AdvancePayment:
    """Map an ``advances`` row to an advance payment."""
    values = {column: row[column] for column in ADVANCE_COLUMNS}
    values["kind"] = BillKind(values["kind"])
    values["status"] = _coerce(AdvanceStatus, values["status"])
    return AdvancePayment(**values)


class PostgresBillingStore(BillingStore):
    """Billing store on PostgreSQL via psycopg.

    Runs in autocommit mode; ``transaction()`` opens a database transaction
    (a savepoint when nested). ``get_config(..., for_update=True)`` takes a
    row lock that lasts until the enclosing transaction ends, and
    ``lock(key)`` adds a session advisory lock so separate processes
    serialize on the same config.

    Parameters
    ----------
    config : PostgresConfig | str
        Connection configuration or connection string.
    connection : psycopg.Connection | None
        Existing connection (mainly for tests).
    """

    def __init__(
        self,
        config: PostgresConfig | str | None = None,
        connection: psycopg.Connection | None = None,
    ) -> None:
        if connection is None:
            if config is None:
                config = PostgresConfig()
            conninfo = config if isinstance(config, str) else config.connection_string
            try:
                connection = psycopg.connect(conninfo, autocommit=True, row_factory=dict_row)
            except psycopg.Error as exc:
                raise PersistenceError(f"Could not connect to PostgreSQL: {exc}") from exc
        self._conn = connection
        self._key_locks: dict[str, threading.Lock] = {}
        self._key_locks_guard = threading.Lock()

    @contextmanager
    def _errors(self) -> Iterator[None]:
        try:
            yield
        except psycopg.Error as exc:
            logger.error("PostgreSQL error: %s", exc)
            raise PersistenceError(str(exc)) from exc

    def _execute(self, query: str, params: tuple | dict = ()) -> psycopg.Cursor:
        with self._errors():
            return self._conn.execute(query, params)

    def create_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._errors():
            self._conn.execute(SCHEMA)
        logger.info("Billing schema ready")

    def close(self) -> None:
        self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._errors():
            with self._conn.transaction():
                yield

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        with self._key_locks_guard:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        with key_lock:
            self._execute("SELECT pg_advisory_lock(hashtext(%s))", (key,))
            try:
                yield
            finally:
                self._execute("SELECT pg_advisory_unlock(hashtext(%s))", (key,))

    # Obligation configs
    def add_config(self, config: RecurringObligationConfig) -> None:
        columns = ", ".join(CONFIG_COLUMNS)
        placeholders = ", ".join(f"%({c})s" for c in CONFIG_COLUMNS)
        params = {c: _db_value(getattr(config, c)) for c in CONFIG_COLUMNS}
        self._execute(
            f"INSERT INTO obligation_configs ({columns}) VALUES ({placeholders})",
            params,
        )

    def save_config(self, config: RecurringObligationConfig) -> None:
        assignments = ", ".join(f"{c} = %({c})s" for c in CONFIG_COLUMNS if c != "config_id")
        params = {c: _db_value(getattr(config, c)) for c in CONFIG_COLUMNS}
        cursor = self._execute(
            f"UPDATE obligation_configs SET {assignments} WHERE config_id = %(config_id)s",
            params,
        )
        if cursor.rowcount == 0:
            raise EntityNotFoundError(f"Config {config.config_id} not found")

    def get_config(self, config_id: str, for_update: bool = False) -> RecurringObligationConfig:
        query = "SELECT * FROM obligation_configs WHERE config_id = %s"
        if for_update:
            query += " FOR UPDATE"
        row = self._execute(query, (config_id,)).fetchone()
        if row is None:
            raise EntityNotFoundError(f"Config {config_id} not found")
        return row_to_config(row)

    def fetch_due_configs(self, as_of: date) -> list[RecurringObligationConfig]:
        rows = self._execute(
            """
            SELECT * FROM obligation_configs
            WHERE auto_generate AND status <> 'paused' AND next_due_date <= %s
            ORDER BY next_due_date, config_id
            """,
            (as_of,),
        ).fetchall()
        return [row_to_config(row) for row in rows]

    # Bills
    def create_bill(self, bill: BillRecord) -> None:
        columns = ", ".join(BILL_COLUMNS)
        placeholders = ", ".join(f"%({c})s" for c in BILL_COLUMNS)
        params = {c: _db_value(getattr(bill, c)) for c in BILL_COLUMNS}
        self._execute(
            f"INSERT INTO bill_records ({columns}) VALUES ({placeholders})",
            params,
        )

    def get_bill(self, bill_number: str) -> BillRecord:
        row = self._execute(
            "SELECT * FROM bill_records WHERE bill_number = %s", (bill_number,)
        ).fetchone()
        if row is None:
            raise EntityNotFoundError(f"Bill {bill_number} not found")
        return row_to_bill(row)

    def has_bill_for_period(self, config_id: str, period_date: date) -> bool:
        row = self._execute(
            """
            SELECT 1 FROM bill_records
            WHERE config_id = %s
              AND EXTRACT(YEAR FROM period_date) = %s
              AND EXTRACT(MONTH FROM period_date) = %s
            LIMIT 1
            """,
            (config_id, period_date.year, period_date.month),
        ).fetchone()
        return row is not None

    def fetch_history(
        self,
        business_id: str | None,
        kind: BillKind,
        before: date | None = None,
        exclude: str | None = None,
        limit: int = 12,
    ) -> list[BillRecord]:
        rows = self._execute(
            """
            SELECT * FROM bill_records
            WHERE business_id IS NOT DISTINCT FROM %(business_id)s
              AND kind = %(kind)s
              AND (%(before)s::date IS NULL OR period_date < %(before)s::date)
              AND (%(exclude)s::text IS NULL OR bill_number <> %(exclude)s::text)
            ORDER BY period_date DESC, bill_number DESC
            LIMIT %(limit)s
            """,
            {
                "business_id": business_id,
                "kind": BillKind(kind).value,
                "before": before,
                "exclude": exclude,
                "limit": limit,
            },
        ).fetchall()
        return [row_to_bill(row) for row in rows]

    def latest_bill(self, business_id: str, kind: BillKind) -> BillRecord | None:
        history = self.fetch_history(business_id, kind, limit=1)
        return history[0] if history else None

    def update_payment_status(self, bill_number: str, status: PaymentStatus) -> BillRecord:
        row = self._execute(
            "UPDATE bill_records SET payment_status = %s WHERE bill_number = %s RETURNING *",
            (PaymentStatus(status).value, bill_number),
        ).fetchone()
        if row is None:
            raise EntityNotFoundError(f"Bill {bill_number} not found")
        return row_to_bill(row)

    # Advances
    def add_advance(self, advance: AdvancePayment) -> None:
        columns = ", ".join(ADVANCE_COLUMNS)
        placeholders = ", ".join(f"%({c})s" for c in ADVANCE_COLUMNS)
        params = {c: _db_value(getattr(advance, c)) for c in ADVANCE_COLUMNS}
        self._execute(
            f"INSERT INTO advances ({columns}) VALUES ({placeholders})",
            params,
        )

    def find_advance(
        self, business_id: str | None, kind: BillKind, year: int, month: int
    ) -> AdvancePayment | None:
        row = self._execute(
            """
            SELECT * FROM advances
            WHERE business_id = %s AND kind = %s AND year = %s AND month = %s
              AND status = 'active'
            ORDER BY advance_date DESC
            LIMIT 1
            """,
            (business_id, BillKind(kind).value, year, month),
        ).fetchone()
        return row_to_advance(row) if row else None

    def next_bill_number(self, prefix: str, year: int) -> str:
        """Allocate the next bill number.

        Must run inside :meth:`transaction`; the advisory lock taken here is
        released at commit, after the new bill row is visible.
        """
        pattern = f"{prefix}-{year}-"
        self._execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (pattern,))
        rows = self._execute(
            "SELECT bill_number FROM bill_records WHERE bill_number LIKE %s",
            (pattern + "%",),
        ).fetchall()
        sequences = [
            seq
            for row in rows
            if (seq := parse_bill_sequence(row["bill_number"], prefix, year)) is not None
        ]
        return format_bill_number(prefix, year, max(sequences, default=0) + 1)

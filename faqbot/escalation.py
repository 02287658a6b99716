"""Persistence of unresolved queries for human follow-up."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Literal, Protocol

import httpx

from .config import config
from .exceptions import RecordError
from .models import EscalationRecord

logger = config.get_logger(__name__)

EscalationBackend = Literal["sqlite", "sheetdb"]


class EscalationStore(Protocol):
    """Storage collaborator; raises ``RecordError`` when a write fails."""

    def persist(self, record: EscalationRecord) -> None: ...


class SQLiteEscalationStore:
    """Stores unresolved queries in a local SQLite table."""

    backend = "sqlite"

    def __init__(self, db_path: Path = Path("data/escalations.db")) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(exist_ok=True, parents=True)
        self._create_tables()

    def _create_tables(self) -> None:
        with sqlite3.connect(str(self.db_path)) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS unresolved_queries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    email TEXT,
                    query TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            """)
            conn.commit()

    def persist(self, record: EscalationRecord) -> None:
        """Insert one record.

        Raises:
            RecordError: If the database write fails.
        """
        try:
            with sqlite3.connect(str(self.db_path)) as conn:
                conn.execute(
                    """
                    INSERT INTO unresolved_queries (name, email, query, timestamp)
                    VALUES (?, ?, ?, ?)
                    """,
                    (record.name, record.email, record.query, record.timestamp),
                )
                conn.commit()
        except sqlite3.Error as exc:
            msg = f"Failed to store unresolved query in {self.db_path}"
            raise RecordError(msg) from exc
        logger.info("Unresolved query saved to %s", self.db_path.name)

    def fetch_all(self) -> list[EscalationRecord]:
        """Return stored records in insertion order."""
        with sqlite3.connect(str(self.db_path)) as conn:
            rows = conn.execute(
                "SELECT name, email, query, timestamp "
                "FROM unresolved_queries ORDER BY id"
            ).fetchall()
        return [
            EscalationRecord(name=name, email=email, query=query, timestamp=timestamp)
            for name, email, query, timestamp in rows
        ]


class SheetDBEscalationStore:
    """Appends unresolved queries as rows of a SheetDB-backed spreadsheet."""

    backend = "sheetdb"

    def __init__(
        self,
        api_address: str,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_address = api_address
        self.client = client or httpx.Client(
            timeout=timeout,
            headers=config.get_api_headers(),
        )

    def persist(self, record: EscalationRecord) -> None:
        """POST one row to the SheetDB API.

        Raises:
            RecordError: If the request fails or SheetDB rejects it.
        """
        try:
            response = self.client.post(
                self.api_address,
                json={"data": [record.as_dict()]},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            msg = "Failed to store unresolved query in SheetDB"
            raise RecordError(msg) from exc
        logger.info("Unresolved query saved to SheetDB: %s", response.text[:100])


def get_escalation_store(
    backend: EscalationBackend | str | None = None,
    *,
    db_path: Path | None = None,
    api_address: str | None = None,
) -> SQLiteEscalationStore | SheetDBEscalationStore:
    """Return a configured escalation store instance.

    Raises:
        ValueError: If an unsupported backend is requested or SheetDB has no
            API address.
    """
    backend = (backend or config.ESCALATION_BACKEND).lower()

    if backend == "sqlite":
        return SQLiteEscalationStore(
            db_path=db_path if db_path is not None else config.ESCALATION_DB_PATH
        )

    if backend == "sheetdb":
        address = api_address or config.SHEETDB_API_ADDRESS
        if not address:
            msg = "SheetDB backend requires an API address"
            raise ValueError(msg)
        return SheetDBEscalationStore(address, timeout=config.SHEETDB_TIMEOUT)

    msg = f"Unsupported escalation backend: {backend}"
    raise ValueError(msg)


class EscalationRecorder:
    """Best-effort hand-off of escalation records to the storage collaborator."""

    def __init__(self, store: EscalationStore) -> None:
        self.store = store

    def record(self, record: EscalationRecord) -> bool:
        """Persist ``record``; failures are logged, never raised.

        Returns:
            True if the store accepted the record.
        """
        try:
            self.store.persist(record)
        except RecordError:
            logger.exception(
                "Could not record unresolved query (query: %.80s)", record.query
            )
            return False
        except Exception:
            logger.exception(
                "Unexpected failure in %s while recording query: %.80s",
                type(self.store).__name__,
                record.query,
            )
            return False
        else:
            return True

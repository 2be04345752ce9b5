"""Parameterised-SQL store the reconciliation services run against.

The store is small: ``query``/``get``/``run`` execute one
statement, ``transaction`` runs a batch atomically and ``atomic`` opens a unit
of work that callers can span several statements with.  Statements use DB-API
``%s`` placeholders.  Any database error surfaces as
:class:`~ledger.exceptions.StoreFailure` chained to the driver exception.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Sequence

from django.db import DEFAULT_DB_ALIAS, DatabaseError, connections, transaction

from ..exceptions import NotFound, StoreFailure

logger = logging.getLogger(__name__)

Params = Sequence[Any]


@dataclass(frozen=True)
class RunResult:
    """Outcome of a write: the new row id (inserts only) and affected rows."""

    id: Optional[int]
    changes: int


class LedgerStore:
    def __init__(self, using: str = DEFAULT_DB_ALIAS) -> None:
        self.using = using

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"LedgerStore(using={self.using!r})"

    @property
    def connection(self):
        return connections[self.using]

    @contextmanager
    def _cursor(self, sql: str):
        try:
            with self.connection.cursor() as cursor:
                yield cursor
        except DatabaseError as exc:
            logger.error("Ledger store statement failed: %s", sql.strip().splitlines()[0])
            raise StoreFailure(str(exc)) from exc

    def query(self, sql: str, params: Params = ()) -> list[dict]:
        """Return every row of ``sql`` as a column-name keyed dictionary."""

        with self._cursor(sql) as cursor:
            cursor.execute(sql, list(params))
            columns = [col[0] for col in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]

    def get(self, sql: str, params: Params = ()) -> Optional[dict]:
        """Return the first row of ``sql`` or ``None``."""

        with self._cursor(sql) as cursor:
            cursor.execute(sql, list(params))
            row = cursor.fetchone()
            if row is None:
                return None
            columns = [col[0] for col in cursor.description]
            return dict(zip(columns, row))

    def run(self, sql: str, params: Params = ()) -> RunResult:
        """Execute a write statement."""

        is_insert = sql.lstrip().upper().startswith("INSERT")
        # PostgreSQL cursors do not report lastrowid.
        returning = is_insert and self.connection.vendor == "postgresql"
        if returning:
            sql = f"{sql.rstrip()} RETURNING id"
        with self._cursor(sql) as cursor:
            cursor.execute(sql, list(params))
            if returning:
                return RunResult(id=cursor.fetchone()[0], changes=cursor.rowcount)
            return RunResult(
                id=cursor.lastrowid if is_insert else None,
                changes=cursor.rowcount,
            )

    def transaction(self, operations: Iterable[tuple[str, Params]]) -> list[RunResult]:
        """Run ``(sql, params)`` pairs in order, all or nothing."""

        with self.atomic():
            return [self.run(sql, params) for sql, params in operations]

    def atomic(self):
        """Unit of work; nested calls become savepoints."""

        return transaction.atomic(using=self.using)

    def get_next_sequence(self, name: str) -> str:
        """Advance sequence ``name`` and return the formatted document number."""

        with self.atomic():
            sequence = self.get(
                "SELECT prefix, suffix, current_value, format_length "
                "FROM sequences WHERE sequence_name = %s",
                [name],
            )
            if sequence is None:
                raise NotFound("Sequence", name)
            next_value = int(sequence["current_value"]) + 1
            self.run(
                "UPDATE sequences SET current_value = %s WHERE sequence_name = %s",
                [next_value, name],
            )
        padded = str(next_value).zfill(int(sequence["format_length"]))
        return f"{sequence['prefix'] or ''}{padded}{sequence['suffix'] or ''}"

"""Read-only access to the worker's SQLite job status table."""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Dict, List, Optional

from autoseg_supervisor.domain.exceptions import StatusQueryError
from autoseg_supervisor.domain.models import JobStatusRecord, StatusReport
from autoseg_supervisor.shared.logging import get_logger

logger = get_logger(__name__)

KNOWN_SERIES_LIMIT = 50


def _quote(identifier: str) -> str:
    """Quote an SQL identifier taken from configuration."""
    return '"' + identifier.replace('"', '""') + '"'


class SqliteStatusReader:
    """
    Reads job status rows written by the worker.

    The database is always opened read-only: the worker is its only writer.
    Implements IStatusReader protocol.
    """

    def __init__(
        self,
        database_path: Path,
        table: str = "dicomlog",
        series_column: str = "series_name",
        status_column: str = "status",
        timeout: float = 5.0,
    ):
        self.database_path = Path(database_path)
        self.table = table
        self.series_column = series_column
        self.status_column = status_column
        self.timeout = timeout
        self._logger = get_logger(__name__)

    def _connect(self) -> sqlite3.Connection:
        uri = f"{self.database_path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            with closing(self._connect()) as conn:
                return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StatusQueryError(f"Query on {self.database_path} failed: {e}") from e

    def ping(self) -> None:
        """Raise StatusQueryError unless the database file is readable as SQLite."""
        if not self.database_path.is_file():
            raise StatusQueryError(f"Database file not found: {self.database_path}")
        self._query("SELECT COUNT(*) FROM sqlite_master")

    def _record(self, row: sqlite3.Row) -> JobStatusRecord:
        data = dict(row)
        series = data.pop(self.series_column, None)
        status = data.pop(self.status_column, None)
        return JobStatusRecord(series_id=str(series), status=status, details=data)

    def find_all(self, series_id: str) -> List[JobStatusRecord]:
        sql = (
            f"SELECT * FROM {_quote(self.table)} "
            f"WHERE {_quote(self.series_column)} = ? ORDER BY rowid"
        )
        return [self._record(row) for row in self._query(sql, (series_id,))]

    def find_status(self, series_id: str) -> Optional[JobStatusRecord]:
        records = self.find_all(series_id)
        return records[0] if records else None

    def has_status(self, series_id: str, status: str) -> bool:
        sql = (
            f"SELECT COUNT(*) FROM {_quote(self.table)} "
            f"WHERE {_quote(self.series_column)} = ? AND {_quote(self.status_column)} = ?"
        )
        rows = self._query(sql, (series_id, status))
        return rows[0][0] > 0

    def list_tables(self) -> List[str]:
        rows = self._query("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        return [row[0] for row in rows]

    def count_rows(self) -> int:
        return self._query(f"SELECT COUNT(*) FROM {_quote(self.table)}")[0][0]

    def count_by_status(self) -> Dict[str, int]:
        status = _quote(self.status_column)
        rows = self._query(
            f"SELECT {status}, COUNT(*) FROM {_quote(self.table)} GROUP BY {status}"
        )
        return {str(row[0]): row[1] for row in rows}

    def distinct_series(self, limit: int = KNOWN_SERIES_LIMIT) -> List[str]:
        series = _quote(self.series_column)
        rows = self._query(
            f"SELECT DISTINCT {series} FROM {_quote(self.table)} ORDER BY {series} LIMIT ?",
            (limit,),
        )
        return [str(row[0]) for row in rows]

    def report(self, series_id: str, expected_status: str) -> StatusReport:
        """
        Snapshot everything that helps explain a missing status transition.

        Never raises: each failed query is recorded in ``errors`` and the
        remaining queries are still attempted.
        """
        report = StatusReport(
            series_id=series_id,
            expected_status=expected_status,
            database_path=self.database_path,
        )

        if not self.database_path.is_file():
            return report
        report.database_exists = True
        report.database_size = self.database_path.stat().st_size

        try:
            self.ping()
            report.connectable = True
            report.tables = self.list_tables()
        except StatusQueryError as e:
            report.errors.append(str(e))
            return report

        report.table_exists = self.table in report.tables
        if not report.table_exists:
            return report

        for attribute, query in (
            ("total_rows", self.count_rows),
            ("rows_by_status", self.count_by_status),
            ("series_rows", lambda: self.find_all(series_id)),
        ):
            try:
                setattr(report, attribute, query())
            except StatusQueryError as e:
                report.errors.append(str(e))

        if not report.series_rows:
            try:
                report.known_series = self.distinct_series()
            except StatusQueryError as e:
                report.errors.append(str(e))

        return report

"""
Audit Trail
===========

Append-only, day-partitioned record of every pipeline decision.

Layout inside ``log_dir``::

    audit-2024-05-01.log                  one AuditEntry per line
    security-violations-2024-05-01.log    one SecurityViolationEntry per line

Partitions are named by the UTC date of the entry timestamp and are never
rewritten. Writing is best-effort: failures are logged and absorbed so that
auditing can never fail the request being audited.
"""

import json
import os
import threading
from datetime import date, timezone
from pathlib import Path
from typing import Callable, Iterator, TypeVar

import structlog

from sql_guard.errors import AuditWriteFailure
from sql_guard.models import AuditEntry, SecurityViolationEntry

logger = structlog.get_logger(__name__)

AUDIT_PREFIX = "audit-"
VIOLATION_PREFIX = "security-violations-"
PARTITION_SUFFIX = ".log"

DEFAULT_WINDOW_DAYS = 7

T = TypeVar("T")


class AuditTrail:
    """
    Durable audit log partitioned by calendar day.

    Concurrent appends never interleave: every line goes out in a single
    ``write`` on an ``O_APPEND`` descriptor, and writers inside one process
    are additionally serialized by a lock.
    """

    def __init__(
        self,
        log_dir: str | Path = "logs",
        window_days: int = DEFAULT_WINDOW_DAYS,
        mirror_to_log: bool = False,
    ) -> None:
        """
        Initialize the audit trail.

        Args:
            log_dir: Directory holding the partitions (created lazily)
            window_days: Number of most recent partitions scanned by queries
            mirror_to_log: Also emit each entry on the diagnostic logger
        """
        self.log_dir = Path(log_dir)
        self.window_days = window_days
        self.mirror_to_log = mirror_to_log
        self._lock = threading.Lock()

    def partition_path(self, prefix: str, day: date) -> Path:
        return self.log_dir / f"{prefix}{day.isoformat()}{PARTITION_SUFFIX}"

    def is_writable(self) -> bool:
        """Whether new partitions can be created in ``log_dir``."""
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.log_dir, os.W_OK)

    def record(self, entry: AuditEntry) -> None:
        """Append one audit entry. Never raises."""
        day = entry.timestamp.astimezone(timezone.utc).date()
        try:
            self._append(self.partition_path(AUDIT_PREFIX, day), entry.to_dict())
        except AuditWriteFailure as e:
            logger.error(
                "audit_write_failed",
                error=e.message,
                user_id=entry.user_id,
                status=entry.status.value,
            )
            return

        if self.mirror_to_log:
            logger.info("audit_entry", **entry.to_dict())

    def record_violation(self, violation: SecurityViolationEntry) -> None:
        """Append one security violation to the high-severity series. Never raises."""
        day = violation.timestamp.astimezone(timezone.utc).date()
        try:
            self._append(self.partition_path(VIOLATION_PREFIX, day), violation.to_dict())
        except AuditWriteFailure as e:
            logger.error("audit_write_failed", error=e.message, user_id=violation.user_id)
            return

        logger.warning(
            "security_violation",
            severity=violation.severity,
            user_id=violation.user_id,
            blocked_columns=[b.column for b in violation.blocked_columns],
        )

    def query_by_user(self, user_id: str, limit: int = 100) -> list[AuditEntry]:
        """
        Most recent entries of one user, newest first.

        Only the most recent ``window_days`` partitions are scanned, so this
        is a preview rather than a complete history.
        """
        return self._scan(
            AUDIT_PREFIX,
            AuditEntry.from_dict,
            lambda entry: entry.user_id == user_id,
            limit,
        )

    def query_violations(self, limit: int = 100) -> list[SecurityViolationEntry]:
        """Most recent security violations across all users, newest first."""
        return self._scan(VIOLATION_PREFIX, SecurityViolationEntry.from_dict, lambda _: True, limit)

    def _append(self, path: Path, record: dict) -> None:
        try:
            line = (json.dumps(record, default=str) + "\n").encode("utf-8")
        except (TypeError, ValueError) as e:
            raise AuditWriteFailure(f"Unserializable audit record: {e}") from e

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd = os.open(path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o640)
                try:
                    written = os.write(fd, line)
                finally:
                    os.close(fd)
            except OSError as e:
                raise AuditWriteFailure(f"Error writing audit log {path.name}: {e}") from e

        if written != len(line):
            raise AuditWriteFailure(f"Short write to audit log {path.name}")

    def _partitions(self, prefix: str) -> list[Path]:
        if not self.log_dir.is_dir():
            return []
        files = sorted(
            (
                p
                for p in self.log_dir.iterdir()
                if p.name.startswith(prefix) and p.name.endswith(PARTITION_SUFFIX)
            ),
            key=lambda p: p.name,
            reverse=True,
        )
        return files[: self.window_days]

    def _scan(
        self,
        prefix: str,
        parse: Callable[[dict], T],
        matches: Callable[[T], bool],
        limit: int,
    ) -> list[T]:
        results: list[T] = []
        if limit <= 0:
            return results

        for path in self._partitions(prefix):
            for record in self._read_newest_first(path, parse):
                if matches(record):
                    results.append(record)
                    if len(results) >= limit:
                        return results
        return results

    @staticmethod
    def _read_newest_first(path: Path, parse: Callable[[dict], T]) -> Iterator[T]:
        try:
            lines = path.read_bytes().splitlines()
        except OSError as e:
            logger.error("audit_read_failed", partition=path.name, error=str(e))
            return

        for line in reversed(lines):
            if not line.strip():
                continue
            try:
                yield parse(json.loads(line.decode("utf-8")))
            except (ValueError, KeyError, TypeError, AttributeError):
                # malformed line
                continue

"""
Unit Tests for AuditTrail
=========================

Partitioning, querying and failure absorption.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

from sql_guard.audit import AUDIT_PREFIX, VIOLATION_PREFIX, AuditTrail
from sql_guard.models import (
    AuditEntry,
    AuditStatus,
    BlockedColumn,
    QueryWarning,
    SecurityViolationEntry,
)


def make_entry(user_id: str = "u-1", status: AuditStatus = AuditStatus.ALLOWED, **kwargs) -> AuditEntry:
    return AuditEntry(user_id=user_id, status=status, **kwargs)


class TestRecord:
    """Appending entries."""

    def test_entry_lands_in_utc_day_partition(self, audit_trail: AuditTrail) -> None:
        """Test that the partition is chosen by the UTC date, not the local one."""
        local = timezone(timedelta(hours=-5))
        entry = make_entry(timestamp=datetime(2024, 5, 1, 23, 30, tzinfo=local))
        audit_trail.record(entry)

        path = audit_trail.log_dir / "audit-2024-05-02.log"
        assert path.exists()
        assert not (audit_trail.log_dir / "audit-2024-05-01.log").exists()

    def test_one_json_line_per_entry(self, audit_trail: AuditTrail) -> None:
        entry = make_entry(
            generated_sql="SELECT password FROM users",
            executed_sql="SELECT COUNT(*) as users_with_password FROM users",
            blocked_columns=(BlockedColumn("password", "sensitive", "Access to 'password' is blocked."),),
            warnings=(QueryWarning("note", code="x", details={"k": 1}),),
            rows_returned=1,
        )
        audit_trail.record(entry)
        audit_trail.record(make_entry(status=AuditStatus.BLOCKED))

        path = audit_trail.partition_path(AUDIT_PREFIX, entry.timestamp.date())
        lines = path.read_text().splitlines()
        assert len(lines) == 2

        first = json.loads(lines[0])
        assert first["status"] == "allowed"
        assert first["blocked_columns"][0]["column"] == "password"
        assert first["warnings"][0]["details"] == {"k": 1}
        assert AuditEntry.from_dict(first) == entry

    def test_partitions_created_lazily(self, tmp_path) -> None:
        trail = AuditTrail(tmp_path / "nested" / "logs")
        assert not trail.log_dir.exists()
        trail.record(make_entry())
        assert trail.log_dir.is_dir()

    def test_write_failure_is_absorbed(self, tmp_path) -> None:
        """Test that an unwritable directory never raises into the caller."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        trail = AuditTrail(blocker / "logs")

        trail.record(make_entry())
        trail.record_violation(
            SecurityViolationEntry(
                user_id="u-1",
                attempted_query="SELECT ssn FROM accounts",
                blocked_columns=(),
                reason="r",
            )
        )
        assert trail.query_by_user("u-1") == []
        assert trail.is_writable() is False

    def test_concurrent_appends_do_not_interleave(self, audit_trail: AuditTrail) -> None:
        """Test that every line survives intact under concurrent writers."""
        long_sql = "SELECT " + ", ".join(f"col_{i}" for i in range(500)) + " FROM t"

        def write(i: int) -> None:
            audit_trail.record(make_entry(user_id=f"user-{i % 4}", generated_sql=long_sql))

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(write, range(200)))

        path = audit_trail.partition_path(AUDIT_PREFIX, datetime.now(timezone.utc).date())
        lines = path.read_text().splitlines()
        assert len(lines) == 200
        for line in lines:
            assert json.loads(line)["generated_sql"] == long_sql


class TestQueryByUser:
    """Reading a user's recent history."""

    def test_filters_and_orders_newest_first(self, audit_trail: AuditTrail) -> None:
        base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        for i in range(3):
            audit_trail.record(make_entry(timestamp=base + timedelta(minutes=i), reason=f"a{i}"))
        audit_trail.record(make_entry(user_id="other", timestamp=base))
        audit_trail.record(make_entry(timestamp=base + timedelta(days=1), reason="next-day"))

        entries = audit_trail.query_by_user("u-1")
        assert [e.reason for e in entries] == ["next-day", "a2", "a1", "a0"]

    def test_limit(self, audit_trail: AuditTrail) -> None:
        for _ in range(5):
            audit_trail.record(make_entry())
        assert len(audit_trail.query_by_user("u-1", limit=2)) == 2
        assert audit_trail.query_by_user("u-1", limit=0) == []

    def test_only_recent_partitions_are_scanned(self, tmp_path) -> None:
        trail = AuditTrail(tmp_path, window_days=7)
        start = date(2024, 1, 1)
        for offset in range(9):
            day = start + timedelta(days=offset)
            stamp = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
            trail.record(make_entry(timestamp=stamp, reason=day.isoformat()))

        reasons = [e.reason for e in trail.query_by_user("u-1")]
        assert len(reasons) == 7
        assert "2024-01-01" not in reasons
        assert "2024-01-02" not in reasons
        assert reasons[0] == "2024-01-09"

    def test_malformed_lines_are_skipped(self, audit_trail: AuditTrail) -> None:
        entry = make_entry()
        audit_trail.record(entry)
        path = audit_trail.partition_path(AUDIT_PREFIX, entry.timestamp.date())
        with open(path, "a") as f:
            f.write("not json\n")
            f.write('{"user_id": "u-1"}\n')

        assert audit_trail.query_by_user("u-1") == [entry]

    def test_undecodable_line_is_skipped(self, audit_trail: AuditTrail) -> None:
        """Test that invalid UTF-8 in one line does not hide the rest of the partition."""
        older = make_entry(reason="before")
        audit_trail.record(older)
        path = audit_trail.partition_path(AUDIT_PREFIX, older.timestamp.date())
        with open(path, "ab") as f:
            f.write(b"\xff\xfe garbage\n")
        newer = make_entry(reason="after")
        audit_trail.record(newer)

        assert audit_trail.query_by_user("u-1", limit=10) == [newer, older]

    def test_missing_directory_is_empty(self, tmp_path) -> None:
        assert AuditTrail(tmp_path / "absent").query_by_user("u-1") == []


class TestViolations:
    """High-severity series."""

    def test_record_and_query(self, audit_trail: AuditTrail) -> None:
        violation = SecurityViolationEntry(
            user_id="u-9",
            user_email="u9@example.com",
            attempted_query="SELECT ssn FROM accounts",
            blocked_columns=(BlockedColumn("ssn", "sensitive", "Access to 'ssn' is blocked."),),
            reason="Query blocked due to 1 sensitive column(s)",
        )
        audit_trail.record_violation(violation)

        path = audit_trail.partition_path(VIOLATION_PREFIX, violation.timestamp.date())
        assert path.name.startswith("security-violations-")
        assert json.loads(path.read_text())["severity"] == "HIGH"

        found = audit_trail.query_violations()
        assert found == [violation]
        # violations never show up as audit entries
        assert audit_trail.query_by_user("u-9") == []


class TestMirroring:
    """Console mirroring in development."""

    def test_mirrored_entries_are_still_persisted(self, tmp_path) -> None:
        trail = AuditTrail(tmp_path, mirror_to_log=True)
        entry = make_entry(reason="mirrored")
        trail.record(entry)
        assert trail.query_by_user("u-1") == [entry]

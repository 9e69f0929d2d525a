"""Scoped query engine tests."""

import csv
from datetime import date, datetime, timezone
from io import StringIO
from pathlib import Path

import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from audit_trail.core.errors import ValidationError
from audit_trail.core.roles import Caller, parse_role
from audit_trail.db.base import Base
from audit_trail.models import AuditRecord
from audit_trail.services import access_scope, aggregation_service, audit_record_service, query_service
from audit_trail.services.action_type_service import ensure_action_types
from audit_trail.services.query_service import RecordFilters

SUPER_ADMIN = Caller(id="ADM-1", username="root", role=parse_role("SuperAdmin"))
FINANCE_ADMIN = Caller(id="FIN-ADMIN", username="finance.admin", role=parse_role("Finance Admin"))
FINANCE_USER = Caller(id="FIN-001", username="finance.user", role=parse_role("Finance Non-Admin"))
HR_ADMIN = Caller(id="HR-ADMIN", username="hr.admin", role=parse_role("HR Admin"))


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _prepare_db(tmp_path: Path, name: str):
    engine = _build_test_engine(tmp_path / name)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    with testing_session_local() as db:
        ensure_action_types(db)
        _seed_records(db)
    return testing_session_local


def _seed_records(db) -> None:
    rows = [
        ("Budget", "B1", "CREATE", "FIN-001"),
        ("Budget", "B1", "UPDATE", "FIN-002"),
        ("Invoice", "INV-9", "CREATE", "FIN-001"),
        ("Employee", "E1", "CREATE", "HR-001"),
        ("Employee", "E1", "DELETE", "HR-002"),
        ("Stock", "S1", "IMPORT", None),
    ]
    for entity_type, entity_id, code, actor in rows:
        audit_record_service.append(
            db,
            entity_type=entity_type,
            entity_id=entity_id,
            action_type_code=code,
            action_by=actor,
            new_data={"entity": entity_id},
        )


def _set_action_at(db, record_id: int, value: datetime) -> None:
    db.execute(update(AuditRecord).where(AuditRecord.id == record_id).values(action_at=value))
    db.commit()


def test_list_records_applies_caller_scope(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_list_scope.db")

    with session_local() as db:
        _, total = query_service.list_records(db, RecordFilters(), SUPER_ADMIN)
        assert total == 6

        records, total = query_service.list_records(db, RecordFilters(), FINANCE_ADMIN)
        assert total == 3
        assert {record.action_by for record in records} == {"FIN-001", "FIN-002"}

        records, total = query_service.list_records(db, RecordFilters(), FINANCE_USER)
        assert total == 2
        assert {record.action_by for record in records} == {"FIN-001"}

        records, total = query_service.list_records(db, RecordFilters(), HR_ADMIN)
        assert total == 2
        assert {record.entity_type for record in records} == {"Employee"}


def test_list_records_filters_and_pagination(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_list_filters.db")

    with session_local() as db:
        records, total = query_service.list_records(
            db, RecordFilters(entity_type="Budget", entity_id="B1", sort_by="version", sort_order="asc"), SUPER_ADMIN
        )
        assert total == 2
        assert [record.version for record in records] == [1, 2]

        records, total = query_service.list_records(db, RecordFilters(action_type_code="create"), SUPER_ADMIN)
        assert total == 3
        assert {record.action_type_code for record in records} == {"CREATE"}

        page_one, total = query_service.list_records(
            db, RecordFilters(limit=4, page=1, sort_by="id", sort_order="asc"), SUPER_ADMIN
        )
        page_two, _ = query_service.list_records(
            db, RecordFilters(limit=4, page=2, sort_by="id", sort_order="asc"), SUPER_ADMIN
        )
        assert total == 6
        assert len(page_one) == 4
        assert len(page_two) == 2
        assert [r.id for r in page_one + page_two] == sorted(r.id for r in page_one + page_two)


def test_list_records_with_unknown_action_code_is_empty(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_list_unknown_code.db")

    with session_local() as db:
        records, total = query_service.list_records(db, RecordFilters(action_type_code="BOGUS"), SUPER_ADMIN)
        assert records == []
        assert total == 0


def test_list_records_date_window_includes_whole_end_day(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_list_dates.db")

    with session_local() as db:
        records, _ = query_service.list_records(db, RecordFilters(sort_by="id", sort_order="asc"), SUPER_ADMIN)
        _set_action_at(db, records[0].id, datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc))
        _set_action_at(db, records[1].id, datetime(2025, 3, 2, 23, 59, 59, tzinfo=timezone.utc))
        _set_action_at(db, records[2].id, datetime(2025, 3, 3, 0, 0, tzinfo=timezone.utc))

        _, total = query_service.list_records(
            db, RecordFilters(date_from=date(2025, 3, 1), date_to=date(2025, 3, 2)), SUPER_ADMIN
        )
        assert total == 2


@pytest.mark.parametrize(
    "filters",
    [
        RecordFilters(page=0),
        RecordFilters(limit=0),
        RecordFilters(limit=101),
        RecordFilters(sort_by="password"),
        RecordFilters(sort_order="sideways"),
        RecordFilters(date_from=date(2025, 3, 2), date_to=date(2025, 3, 1)),
        RecordFilters(date_to=date.max),
    ],
)
def test_list_records_rejects_invalid_filters(tmp_path: Path, filters: RecordFilters) -> None:
    session_local = _prepare_db(tmp_path, "test_list_invalid.db")

    with session_local() as db:
        with pytest.raises(ValidationError):
            query_service.list_records(db, filters, SUPER_ADMIN)


def test_get_record_out_of_scope_looks_missing(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_get_scope.db")

    with session_local() as db:
        records, _ = query_service.list_records(db, RecordFilters(entity_type="Employee"), SUPER_ADMIN)
        hr_record_id = records[0].id

        assert query_service.get_record_for_caller(db, hr_record_id, SUPER_ADMIN) is not None
        assert query_service.get_record_for_caller(db, hr_record_id, HR_ADMIN) is not None
        assert query_service.get_record_for_caller(db, hr_record_id, FINANCE_ADMIN) is None
        assert query_service.get_record_for_caller(db, 999_999, FINANCE_ADMIN) is None


def test_entity_history_is_ordered_and_scoped(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_history.db")

    with session_local() as db:
        history = query_service.entity_history(db, "Budget", "B1", FINANCE_ADMIN)
        assert [(record.version, record.action_type_code) for record in history] == [(1, "CREATE"), (2, "UPDATE")]

        own = query_service.entity_history(db, "Budget", "B1", FINANCE_USER)
        assert [record.version for record in own] == [1]

        assert query_service.entity_history(db, "Budget", "B1", HR_ADMIN) == []


def test_search_is_case_insensitive_and_scoped(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_search.db")

    with session_local() as db:
        records, total = query_service.search_records(db, "budget", SUPER_ADMIN)
        assert total == 2
        assert {record.entity_type for record in records} == {"Budget"}

        _, total = query_service.search_records(db, "fin-00", SUPER_ADMIN)
        assert total == 3

        _, total = query_service.search_records(db, "employee", FINANCE_ADMIN)
        assert total == 0

        _, total = query_service.search_records(db, "100%", SUPER_ADMIN)
        assert total == 0

        with pytest.raises(ValidationError):
            query_service.search_records(db, "   ", SUPER_ADMIN)


def test_record_stats_respect_scope(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_stats.db")

    with session_local() as db:
        stats = query_service.record_stats(db, SUPER_ADMIN)
        assert stats["total_logs"] == 6
        assert stats["recent_activity"] == 6
        assert stats["action_breakdown"][0] == {"action_type": "CREATE", "description": "Record created", "count": 3}
        assert {row["entity_type"]: row["count"] for row in stats["entity_breakdown"]} == {
            "Budget": 2,
            "Employee": 2,
            "Invoice": 1,
            "Stock": 1,
        }

        finance_stats = query_service.record_stats(db, FINANCE_ADMIN)
        assert finance_stats["total_logs"] == 3
        assert {row["entity_type"] for row in finance_stats["entity_breakdown"]} == {"Budget", "Invoice"}


def test_export_csv_contains_scoped_rows(tmp_path: Path) -> None:
    session_local = _prepare_db(tmp_path, "test_export.db")

    with session_local() as db:
        content = query_service.export_records_csv(db, RecordFilters(sort_by="id", sort_order="asc"), FINANCE_USER)

    rows = list(csv.reader(StringIO(content)))
    assert rows[0] == query_service.EXPORT_COLUMNS
    assert len(rows) == 3
    assert {row[4] for row in rows[1:]} == {"FIN-001"}
    assert rows[1][11] == '{"entity": "B1"}'


def test_every_read_path_uses_the_shared_scope_resolver(tmp_path: Path, monkeypatch) -> None:
    session_local = _prepare_db(tmp_path, "test_shared_scope.db")

    real_scope_for = access_scope.scope_for
    seen: list[str] = []

    def recording_scope_for(caller: Caller):
        seen.append(caller.id)
        return real_scope_for(caller)

    monkeypatch.setattr(access_scope, "scope_for", recording_scope_for)

    with session_local() as db:
        query_service.list_records(db, RecordFilters(), FINANCE_ADMIN)
        query_service.get_record_for_caller(db, 1, FINANCE_ADMIN)
        query_service.entity_history(db, "Budget", "B1", FINANCE_ADMIN)
        query_service.search_records(db, "B", FINANCE_ADMIN)
        query_service.record_stats(db, FINANCE_ADMIN)
        aggregation_service.list_summaries(db, aggregation_service.SummaryFilters(), FINANCE_ADMIN)
        aggregation_service.summary_stats(db, FINANCE_ADMIN)

    assert len(seen) == 7

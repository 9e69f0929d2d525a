"""Credential administration and summary endpoint tests."""

from datetime import datetime, timezone
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, update
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from audit_trail.core.security import create_access_token
from audit_trail.db import session as db_session
from audit_trail.db.base import Base
from audit_trail.main import app
from audit_trail.models import AuditRecord
from audit_trail.services import audit_record_service
from audit_trail.services.action_type_service import ensure_action_types


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _prepare_db(tmp_path: Path, monkeypatch):
    engine = _build_test_engine(tmp_path / "test_admin_endpoints.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)

    with testing_session_local() as db:
        ensure_action_types(db)
    return testing_session_local


def _bearer(caller_id: str, role: str) -> dict[str, str]:
    token = create_access_token({"sub": caller_id, "username": caller_id.lower(), "role": role})
    return {"Authorization": f"Bearer {token}"}


SUPER_ADMIN = _bearer("ADM-1", "SuperAdmin")
FINANCE_ADMIN = _bearer("FIN-ADMIN", "Finance Admin")
FINANCE_USER = _bearer("FIN-001", "Finance Non-Admin")


def test_credential_lifecycle_over_http(tmp_path: Path, monkeypatch) -> None:
    _prepare_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        created = client.post(
            "/api/v1/credentials",
            json={"service_name": "hr", "description": "payroll sync", "allowed_modules": ["payroll"]},
            headers=SUPER_ADMIN,
        )
        credential_id = created.json()["id"]
        raw_key = created.json()["raw_key"]

        valid = client.post("/api/v1/credentials/validate", json={"api_key": raw_key})
        listed = client.get("/api/v1/credentials", headers=SUPER_ADMIN)
        fetched = client.get(f"/api/v1/credentials/{credential_id}", headers=SUPER_ADMIN)
        revoked = client.patch(f"/api/v1/credentials/{credential_id}/revoke", headers=SUPER_ADMIN)
        after_revoke = client.post("/api/v1/credentials/validate", json={"api_key": raw_key})
        deleted = client.delete(f"/api/v1/credentials/{credential_id}", headers=SUPER_ADMIN)
        missing = client.get(f"/api/v1/credentials/{credential_id}", headers=SUPER_ADMIN)

    assert created.status_code == 201
    assert created.json()["service_name"] == "hr"
    assert raw_key.startswith("hr_")

    assert valid.json()["is_valid"] is True
    assert valid.json()["service_name"] == "hr"

    assert [item["id"] for item in listed.json()] == [credential_id]
    assert "raw_key" not in listed.json()[0]
    assert "key_hash" not in listed.json()[0]
    assert fetched.json()["allowed_modules"] == ["payroll"]
    assert fetched.json()["created_by"] == "adm-1"
    assert fetched.json()["last_used_at"] is not None

    assert revoked.json()["is_active"] is False
    assert revoked.json()["revoked_by"] == "adm-1"
    assert after_revoke.json() == {
        "is_valid": False,
        "service_name": None,
        "can_write": None,
        "can_read": None,
        "error": "API key has been revoked",
    }

    assert deleted.json() == {"message": "API key deleted"}
    assert missing.status_code == 404


def test_credential_admin_requires_super_admin(tmp_path: Path, monkeypatch) -> None:
    _prepare_db(tmp_path, monkeypatch)

    with TestClient(app) as client:
        as_department_admin = client.post(
            "/api/v1/credentials", json={"service_name": "finance"}, headers=FINANCE_ADMIN
        )
        anonymous = client.get("/api/v1/credentials")
        bad_service = client.post("/api/v1/credentials", json={"service_name": "marketing"}, headers=SUPER_ADMIN)

    assert as_department_admin.status_code == 403
    assert anonymous.status_code == 401
    assert bad_service.status_code == 400
    assert "serviceName must be one of" in bad_service.json()["detail"]


def test_summary_endpoints(tmp_path: Path, monkeypatch) -> None:
    session_local = _prepare_db(tmp_path, monkeypatch)
    with session_local() as db:
        for entity_id, actor, service in (("B1", "FIN-001", "finance"), ("B2", "FIN-002", "finance"), ("E1", "HR-001", "hr")):
            record = audit_record_service.append(
                db,
                entity_type="Budget" if service == "finance" else "Employee",
                entity_id=entity_id,
                action_type_code="CREATE",
                action_by=actor,
                source_service=service,
            )
            db.execute(
                update(AuditRecord)
                .where(AuditRecord.id == record.id)
                .values(action_at=datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc))
            )
        db.commit()

    with TestClient(app) as client:
        forbidden_trigger = client.post(
            "/api/v1/summaries/aggregate", json={"date_from": "2025-03-10", "date_to": "2025-03-10"}, headers=FINANCE_ADMIN
        )
        inverted = client.post(
            "/api/v1/summaries/aggregate", json={"date_from": "2025-03-11", "date_to": "2025-03-10"}, headers=SUPER_ADMIN
        )
        triggered = client.post(
            "/api/v1/summaries/aggregate", json={"date_from": "2025-03-09", "date_to": "2025-03-10"}, headers=SUPER_ADMIN
        )
        finance_rows = client.get("/api/v1/summaries", headers=FINANCE_ADMIN)
        all_rows = client.get("/api/v1/summaries", params={"date_from": "2025-03-10"}, headers=SUPER_ADMIN)
        user_rows = client.get("/api/v1/summaries", headers=FINANCE_USER)
        stats = client.get("/api/v1/summaries/stats", headers=FINANCE_ADMIN)
        recent = client.get("/api/v1/summaries/recent", params={"days": 3}, headers=FINANCE_USER)

    assert forbidden_trigger.status_code == 403
    assert inverted.status_code == 400
    assert triggered.status_code == 200
    assert triggered.json() == {"dates_processed": 2, "message": "Aggregation completed for 2 days"}

    assert [(row["source_service"], row["total_count"], row["unique_users"]) for row in finance_rows.json()] == [
        ("finance", 2, 2)
    ]
    assert {row["source_service"] for row in all_rows.json()} == {"finance", "hr"}
    assert user_rows.status_code == 403
    assert stats.json() == {
        "total_summaries": 1,
        "total_logs_aggregated": 2,
        "service_breakdown": [{"service": "finance", "total_logs": 2}],
    }
    assert recent.status_code == 200
    assert recent.json() == []

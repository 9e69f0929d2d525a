"""Service credential administration endpoints (SuperAdmin)."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from audit_trail.core.errors import UnauthorizedError
from audit_trail.core.roles import Caller
from audit_trail.db.session import get_db
from audit_trail.schemas.credential import (
    CredentialCreate,
    CredentialCreated,
    CredentialRead,
    CredentialValidateRequest,
    CredentialValidation,
)
from audit_trail.services import credential_service
from audit_trail.services.security_guards import require_super_admin

router: APIRouter = APIRouter()


@router.get("", response_model=list[CredentialRead])
def list_credentials(
    db: Session = Depends(get_db),
    _: Caller = Depends(require_super_admin),
) -> list[CredentialRead]:
    return [CredentialRead.model_validate(item) for item in credential_service.list_credentials(db)]


@router.post("", response_model=CredentialCreated, status_code=status.HTTP_201_CREATED)
def create_credential(
    payload: CredentialCreate,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_super_admin),
) -> CredentialCreated:
    credential, raw_key = credential_service.create_credential(
        db,
        service_name=payload.service_name,
        description=payload.description,
        can_write=payload.can_write,
        can_read=payload.can_read,
        allowed_modules=payload.allowed_modules,
        expires_at=payload.expires_at,
        created_by=caller.username,
    )
    return CredentialCreated(id=credential.id, service_name=credential.service_name, raw_key=raw_key)


@router.post("/validate", response_model=CredentialValidation)
def validate_credential(payload: CredentialValidateRequest, db: Session = Depends(get_db)) -> CredentialValidation:
    """Report whether a raw key is currently usable."""
    try:
        credential = credential_service.validate_credential(db, payload.api_key)
    except UnauthorizedError as exc:
        return CredentialValidation(is_valid=False, error=exc.message)
    return CredentialValidation(
        is_valid=True,
        service_name=credential.service_name,
        can_write=credential.can_write,
        can_read=credential.can_read,
    )


@router.get("/{credential_id}", response_model=CredentialRead)
def get_credential(
    credential_id: int,
    db: Session = Depends(get_db),
    _: Caller = Depends(require_super_admin),
) -> CredentialRead:
    return CredentialRead.model_validate(credential_service.get_credential(db, credential_id))


@router.patch("/{credential_id}/revoke", response_model=CredentialRead)
def revoke_credential(
    credential_id: int,
    db: Session = Depends(get_db),
    caller: Caller = Depends(require_super_admin),
) -> CredentialRead:
    credential = credential_service.revoke_credential(db, credential_id, revoked_by=caller.username)
    return CredentialRead.model_validate(credential)


@router.delete("/{credential_id}")
def delete_credential(
    credential_id: int,
    db: Session = Depends(get_db),
    _: Caller = Depends(require_super_admin),
) -> dict[str, str]:
    credential_service.delete_credential(db, credential_id)
    return {"message": "API key deleted"}

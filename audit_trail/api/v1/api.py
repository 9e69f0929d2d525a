"""API v1 router composition."""

from fastapi import APIRouter

from audit_trail.api.v1.endpoints import audit_records, credentials, summaries

api_router: APIRouter = APIRouter()
api_router.include_router(audit_records.router, prefix="/audit-records", tags=["audit-records"])
api_router.include_router(credentials.router, prefix="/credentials", tags=["credentials"])
api_router.include_router(summaries.router, prefix="/summaries", tags=["summaries"])

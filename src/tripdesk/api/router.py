from __future__ import annotations

from fastapi import APIRouter

from tripdesk.modules.imports.api import router as imports_router
from tripdesk.modules.payments.api import router as payments_router
from tripdesk.modules.proposals.api import router as proposals_router
from tripdesk.modules.venues.api import router as venues_router
from tripdesk.modules.workflow.api import router as workflow_router

router = APIRouter()

# Smart import first: its static path must win over /admin/trip-proposals/{proposal_id}.
router.include_router(imports_router, prefix="/api")
router.include_router(proposals_router, prefix="/api")
router.include_router(workflow_router, prefix="/api")
router.include_router(payments_router, prefix="/api")
router.include_router(venues_router, prefix="/api")


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}

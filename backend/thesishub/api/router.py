from fastapi import APIRouter
from thesishub.api.endpoints import (
    students, teachers, admin, groups, invitations, proposals, requests, collaboration, dashboard, sync,
)

api_router = APIRouter()


@api_router.get("/health", tags=["Health"])
async def health_check():
    """Simple liveness check"""
    return {"status": "healthy", "service": "thesishub-backend"}


# Accounts
api_router.include_router(students.router, prefix="/students", tags=["Students"])
api_router.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Group formation and proposals
api_router.include_router(groups.router, prefix="/groups", tags=["Groups"])
api_router.include_router(invitations.router, prefix="/invitations", tags=["Invitations"])
api_router.include_router(proposals.router, prefix="/proposals", tags=["Proposals"])

# Supervision workflow
api_router.include_router(requests.router, prefix="/requests", tags=["Supervision Requests"])

# Routes span /groups/{id}/... and /{kind}/{id}, so no prefix
api_router.include_router(collaboration.router, tags=["Collaboration"])

api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
api_router.include_router(sync.router, prefix="/sync", tags=["Data Sync"])

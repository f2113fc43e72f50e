"""
API v1 Router

Organization-scoped collections live under /organizations/{organization_id};
single resources are addressed by their own id.
"""

from fastapi import APIRouter
from . import content_items, members, onboarding, organizations, role_permissions, roles, tasks

router = APIRouter()

ORG = "/organizations/{organization_id}"

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(onboarding.router, prefix="/users", tags=["Onboarding"])
router.include_router(members.router, prefix=f"{ORG}/members", tags=["Members"])
router.include_router(roles.router, prefix=f"{ORG}/roles", tags=["Roles"])
router.include_router(
    role_permissions.router, prefix=f"{ORG}/roles/{{role_id}}/permissions", tags=["Roles"]
)
router.include_router(role_permissions.catalog_router, prefix="/permissions", tags=["Roles"])
router.include_router(content_items.org_router, prefix=f"{ORG}/content-items", tags=["Content"])
router.include_router(content_items.router, prefix="/content-items", tags=["Content"])
router.include_router(tasks.org_router, prefix=f"{ORG}/tasks", tags=["Tasks"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(tasks.member_router, prefix="/members", tags=["Tasks"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/users/{userId}/organizations",
            "/organizations/{orgId}/members",
            "/organizations/{orgId}/roles",
            "/organizations/{orgId}/roles/{roleId}/permissions",
            "/permissions",
            "/organizations/{orgId}/content-items",
            "/content-items/{id}",
            "/organizations/{orgId}/tasks",
            "/tasks/{id}",
            "/members/{memberId}/tasks",
        ],
    }

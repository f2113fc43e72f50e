"""
Authorization decisions: membership, ownership, role permissions and
resource authorship, re-evaluated on every call.
"""

from __future__ import annotations

import uuid

import pytest

from app.core.authorization import Capability, RequestContext, authorize, role_has_permission
from app.core.errors import ForbiddenError, UnauthorizedError
from app.services import members as member_service
from app.services import role_permissions as rp_service

from creatorhub_shared.schemas.members import MemberCreate, MemberUpdate

ALICE = RequestContext.for_user("alice")
BOB = RequestContext.for_user("bob")
CAROL = RequestContext.for_user("carol")


def _role(result, name):
    return next(r for r in result.roles if r.name == name)


@pytest.fixture
async def org(onboard, session):
    result = await onboard("alice", "Acme Creators")
    org_id = result.organization.id
    await member_service.add_member(
        session, ALICE, org_id, MemberCreate(user_id="bob", role_id=_role(result, "Manager").id)
    )
    await member_service.add_member(
        session, ALICE, org_id, MemberCreate(user_id="carol", role_id=_role(result, "Editor").id)
    )
    await session.commit()
    return result


class FakeResource:
    def __init__(self, created_by=None, assigned_to=None):
        self.created_by = created_by
        self.assigned_to = assigned_to


class TestRequestContext:
    def test_anonymous(self):
        ctx = RequestContext.anonymous()
        assert ctx.is_anonymous
        with pytest.raises(UnauthorizedError):
            ctx.require_actor()

    def test_user(self):
        assert RequestContext.for_user("alice").require_actor() == "alice"

    def test_system_is_not_anonymous(self):
        assert not RequestContext.system_context().is_anonymous


class TestAuthorize:
    async def test_system_bypasses(self, session):
        result = await authorize(session, RequestContext.system_context(), uuid.uuid4(), Capability.MANAGE)
        assert result is None

    async def test_anonymous(self, session, org):
        with pytest.raises(UnauthorizedError):
            await authorize(session, RequestContext.anonymous(), org.organization.id, Capability.VIEW)

    async def test_outsider(self, session, org):
        with pytest.raises(ForbiddenError, match="Not a member of this organization"):
            await authorize(session, RequestContext.for_user("dave"), org.organization.id, Capability.VIEW)

    @pytest.mark.parametrize("capability", [Capability.VIEW, Capability.CONTRIBUTE])
    async def test_any_member(self, session, org, capability):
        membership = await authorize(session, CAROL, org.organization.id, capability)
        assert membership.user_id == "carol"

    @pytest.mark.parametrize("capability", list(Capability))
    async def test_owner_passes_everything(self, session, org, capability):
        membership = await authorize(session, ALICE, org.organization.id, capability, resource=FakeResource())
        assert membership.is_owner is True

    @pytest.mark.parametrize("capability", [Capability.MANAGE, Capability.PUBLISH])
    async def test_owner_only(self, session, org, capability):
        with pytest.raises(ForbiddenError, match="Only the organization owner"):
            await authorize(session, BOB, org.organization.id, capability)

    async def test_update_organization_needs_role_permission(self, session, org):
        await authorize(session, BOB, org.organization.id, Capability.UPDATE_ORGANIZATION)
        with pytest.raises(ForbiddenError):
            await authorize(session, CAROL, org.organization.id, Capability.UPDATE_ORGANIZATION)

    async def test_revoked_permission_applies_immediately(self, session, org):
        manager = _role(org, "Manager")
        catalog = {p.code: p.id for p in await rp_service.list_permissions(session)}
        assert await role_has_permission(session, manager.id, "org.update")

        await rp_service.remove_permission(
            session, ALICE, org.organization.id, manager.id, catalog["org.update"]
        )

        assert not await role_has_permission(session, manager.id, "org.update")
        with pytest.raises(ForbiddenError):
            await authorize(session, BOB, org.organization.id, Capability.UPDATE_ORGANIZATION)

    async def test_no_role_means_no_permissions(self, session):
        assert not await role_has_permission(session, None, "org.view")

    async def test_edit_content_creator(self, session, org):
        await authorize(
            session, CAROL, org.organization.id, Capability.EDIT_CONTENT,
            resource=FakeResource(created_by="carol"),
        )
        with pytest.raises(ForbiddenError, match="Not allowed to modify this resource"):
            await authorize(
                session, BOB, org.organization.id, Capability.EDIT_CONTENT,
                resource=FakeResource(created_by="carol"),
            )

    async def test_edit_task_assignee(self, session, org):
        carol = await member_service.find_by_org_and_user(session, org.organization.id, "carol")
        await authorize(
            session, CAROL, org.organization.id, Capability.EDIT_TASK,
            resource=FakeResource(created_by="alice", assigned_to=carol.id),
        )
        with pytest.raises(ForbiddenError):
            await authorize(
                session, BOB, org.organization.id, Capability.EDIT_TASK,
                resource=FakeResource(created_by="alice", assigned_to=carol.id),
            )

    async def test_deactivated_member_loses_access(self, session, org):
        await member_service.update_member(
            session, ALICE, org.organization.id, "carol", MemberUpdate(active=False)
        )
        with pytest.raises(ForbiddenError, match="Not a member"):
            await authorize(session, CAROL, org.organization.id, Capability.VIEW)

"""
Role service: case-insensitive names per organization, all-or-nothing
batches and protected built-in roles.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.authorization import RequestContext
from app.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.models.membership import Membership
from app.models.permission import RolePermission
from app.models.role import Role
from app.services import members as member_service
from app.services import role_permissions as rp_service
from app.services import roles as role_service

from creatorhub_shared.schemas.members import MemberCreate, MemberUpdate
from creatorhub_shared.schemas.roles import RoleCreate, RoleUpdate

ALICE = RequestContext.for_user("alice")
BOB = RequestContext.for_user("bob")


@pytest.fixture
async def org(onboard, session):
    result = await onboard("alice", "Acme Creators")
    await member_service.add_member(session, ALICE, result.organization.id, MemberCreate(user_id="bob"))
    await session.commit()
    return result


async def _role_count(session, organization_id) -> int:
    result = await session.execute(
        select(func.count()).select_from(Role).where(Role.organization_id == organization_id)
    )
    return result.scalar_one()


class TestReadRoles:
    async def test_member_lists_builtin_roles(self, session, org):
        roles = await role_service.list_roles(session, BOB, org.organization.id)
        assert {r.name for r in roles} == {"Admin", "Manager", "Editor", "Viewer"}

    async def test_outsider_cannot_list(self, session, org):
        with pytest.raises(ForbiddenError):
            await role_service.list_roles(session, RequestContext.for_user("carol"), org.organization.id)

    async def test_role_of_another_org_is_not_found(self, session, org, onboard):
        other = await onboard("carol", "Carol Studio")
        with pytest.raises(NotFoundError):
            await role_service.get_role(session, ALICE, org.organization.id, other.roles[0].id)

    async def test_find_by_name_ignores_case(self, session, org):
        role = await role_service.find_by_org_and_name(session, org.organization.id, "eDiToR")
        assert role is not None
        assert role.name == "Editor"


class TestCreateRole:
    async def test_owner_creates_role(self, session, org):
        role = await role_service.create_role(
            session, ALICE, org.organization.id, RoleCreate(name="Producer", description="Runs shoots")
        )
        assert role.name == "Producer"
        assert role.is_builtin is False
        assert role.organization_id == org.organization.id

    async def test_duplicate_name_any_case(self, session, org):
        await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        with pytest.raises(ConflictError):
            await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="PRODUCER"))

    async def test_same_name_in_another_org(self, session, org, onboard):
        other = await onboard("carol", "Carol Studio")
        await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        role = await role_service.create_role(
            session, RequestContext.for_user("carol"), other.organization.id, RoleCreate(name="Producer")
        )
        assert role.organization_id == other.organization.id

    async def test_non_owner_cannot_create(self, session, org):
        with pytest.raises(ForbiddenError):
            await role_service.create_role(session, BOB, org.organization.id, RoleCreate(name="Producer"))


class TestCreateRolesBatch:
    async def test_creates_all(self, session, org):
        roles = await role_service.create_roles_batch(
            session,
            ALICE,
            org.organization.id,
            [RoleCreate(name="Producer"), RoleCreate(name="Scriptwriter")],
        )
        assert [r.name for r in roles] == ["Producer", "Scriptwriter"]
        assert await _role_count(session, org.organization.id) == 6

    async def test_empty_payload(self, session, org):
        with pytest.raises(BadRequestError, match="Empty payload"):
            await role_service.create_roles_batch(session, ALICE, org.organization.id, [])

    async def test_duplicate_in_payload(self, session, org):
        with pytest.raises(BadRequestError, match="Duplicate role name in payload"):
            await role_service.create_roles_batch(
                session,
                ALICE,
                org.organization.id,
                [RoleCreate(name="Producer"), RoleCreate(name="producer")],
            )

    async def test_existing_names_reject_whole_batch(self, session, org):
        with pytest.raises(ConflictError) as exc_info:
            await role_service.create_roles_batch(
                session,
                ALICE,
                org.organization.id,
                [RoleCreate(name="Producer"), RoleCreate(name="editor")],
            )
        assert exc_info.value.details == {"names": ["Editor"]}
        assert await _role_count(session, org.organization.id) == 4


class TestUpdateRole:
    async def test_rename_custom_role(self, session, org):
        role = await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        updated = await role_service.update_role(
            session, ALICE, org.organization.id, role.id, RoleUpdate(name="Showrunner")
        )
        assert updated.name == "Showrunner"

    async def test_rename_onto_existing_name(self, session, org):
        role = await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        with pytest.raises(ConflictError):
            await role_service.update_role(
                session, ALICE, org.organization.id, role.id, RoleUpdate(name="viewer")
            )

    async def test_builtin_cannot_be_downgraded(self, session, org):
        viewer = next(r for r in org.roles if r.name == "Viewer")
        with pytest.raises(ForbiddenError):
            await role_service.update_role(
                session, ALICE, org.organization.id, viewer.id, RoleUpdate(is_builtin=False)
            )

    async def test_builtin_description_can_change(self, session, org):
        viewer = next(r for r in org.roles if r.name == "Viewer")
        updated = await role_service.update_role(
            session, ALICE, org.organization.id, viewer.id, RoleUpdate(description="Read only")
        )
        assert updated.description == "Read only"
        assert updated.is_builtin is True


class TestDeleteRole:
    async def test_builtin_cannot_be_deleted(self, session, org):
        admin = next(r for r in org.roles if r.name == "Admin")
        with pytest.raises(ForbiddenError):
            await role_service.delete_role(session, ALICE, org.organization.id, admin.id)

    async def test_delete_detaches_members_and_permissions(self, session, org):
        role = await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        role_id = role.id
        permissions = await rp_service.list_permissions(session)
        await rp_service.assign_permission(session, ALICE, org.organization.id, role_id, permissions[0].id)
        await member_service.update_member(
            session, ALICE, org.organization.id, "bob", MemberUpdate(role_id=role_id)
        )

        await role_service.delete_role(session, ALICE, org.organization.id, role_id)

        assert await session.get(Role, role_id) is None
        rp = await session.execute(select(RolePermission).where(RolePermission.role_id == role_id))
        assert rp.first() is None
        bob_role = await session.execute(
            select(Membership.role_id).where(
                Membership.organization_id == org.organization.id, Membership.user_id == "bob"
            )
        )
        assert bob_role.scalar_one() is None

    async def test_non_owner_cannot_delete(self, session, org):
        role = await role_service.create_role(session, ALICE, org.organization.id, RoleCreate(name="Producer"))
        with pytest.raises(ForbiddenError):
            await role_service.delete_role(session, BOB, org.organization.id, role.id)

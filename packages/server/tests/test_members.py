"""
Membership store and member service: one row per (organization, user),
at most one owner, and the owner can never be removed or demoted away.
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.core.authorization import RequestContext
from app.core.database import unique_guard
from app.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from app.models.membership import Membership
from app.models.task import Task
from app.services import members as member_service
from app.services import organizations as org_service
from app.services import tasks as task_service

from creatorhub_shared.schemas.members import MemberCreate, MemberUpdate
from creatorhub_shared.schemas.organizations import OrgCreateRequest
from creatorhub_shared.schemas.tasks import TaskCreate

ALICE = RequestContext.for_user("alice")
BOB = RequestContext.for_user("bob")


def _role(result, name):
    return next(r for r in result.roles if r.name == name)


@pytest.fixture
async def org(onboard):
    return await onboard("alice", "Acme Creators")


@pytest.fixture
async def with_bob(session, org):
    membership = await member_service.add_member(
        session,
        ALICE,
        org.organization.id,
        MemberCreate(user_id="bob", role_id=_role(org, "Editor").id),
    )
    await session.commit()
    return membership


async def _owners(session, organization_id) -> list[str]:
    result = await session.execute(
        select(Membership.user_id).where(
            Membership.organization_id == organization_id,
            Membership.is_owner == True,  # noqa: E712
        )
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class TestMembershipStore:
    async def test_find_by_org_and_user(self, session, org, with_bob):
        found = await member_service.find_by_org_and_user(session, org.organization.id, "bob")
        assert found.id == with_bob.id
        assert await member_service.find_by_org_and_user(session, org.organization.id, "carol") is None

    async def test_find_by_id(self, session, with_bob):
        assert (await member_service.find_by_id(session, with_bob.id)).user_id == "bob"
        assert await member_service.find_by_id(session, uuid.uuid4()) is None

    async def test_count_owners(self, session, org, with_bob):
        assert await member_service.count_owners(session, org.organization.id) == 1
        owners = await member_service.find_owners(session, org.organization.id)
        assert [m.user_id for m in owners] == ["alice"]

    async def test_duplicate_pair_conflicts(self, session, org, with_bob):
        with pytest.raises(ConflictError, match="already a member"):
            await member_service.create_membership(session, org.organization.id, "bob")

    async def test_inactive_owner_rejected(self, session):
        org = await org_service.create_organization(
            session, RequestContext.system_context(), OrgCreateRequest(name="Bare")
        )
        with pytest.raises(BadRequestError, match="must be active"):
            await member_service.create_membership(
                session, org.id, "carol", is_owner=True, active=False
            )

    async def test_second_owner_conflicts(self, session, org):
        with pytest.raises(ConflictError, match="already has an owner"):
            await member_service.create_membership(
                session, org.organization.id, "carol", is_owner=True
            )

    async def test_single_owner_index(self, session, org):
        """The partial unique index rejects a second owner even without the pre-check."""
        with pytest.raises(ConflictError):
            async with unique_guard(session, "Organization already has an owner"):
                session.add(
                    Membership(organization_id=org.organization.id, user_id="carol", is_owner=True)
                )
        assert await _owners(session, org.organization.id) == ["alice"]

    async def test_pair_unique_constraint(self, session, org):
        with pytest.raises(ConflictError):
            async with unique_guard(session, "duplicate"):
                session.add(Membership(organization_id=org.organization.id, user_id="alice"))

    async def test_list_newest_first(self, session, org, with_bob):
        await member_service.create_membership(session, org.organization.id, "carol")
        members = await member_service.list_by_organization(session, org.organization.id)
        assert [m.user_id for m in members] == ["carol", "bob", "alice"]


# ---------------------------------------------------------------------------
# Enrolment
# ---------------------------------------------------------------------------

class TestAddMember:
    async def test_owner_adds_member(self, session, org, with_bob):
        assert with_bob.user_id == "bob"
        assert with_bob.is_owner is False
        assert with_bob.active is True
        assert with_bob.role_id == _role(org, "Editor").id

    async def test_non_owner_cannot_add(self, session, org, with_bob):
        with pytest.raises(ForbiddenError):
            await member_service.add_member(
                session, BOB, org.organization.id, MemberCreate(user_id="carol")
            )

    async def test_outsider_cannot_add(self, session, org):
        with pytest.raises(ForbiddenError, match="Not a member"):
            await member_service.add_member(
                session,
                RequestContext.for_user("carol"),
                org.organization.id,
                MemberCreate(user_id="carol"),
            )

    async def test_role_from_another_org(self, session, org, onboard):
        other = await onboard("bob", "Bob Studio")
        with pytest.raises(BadRequestError):
            await member_service.add_member(
                session,
                ALICE,
                org.organization.id,
                MemberCreate(user_id="carol", role_id=_role(other, "Viewer").id),
            )

    async def test_unknown_org(self, session):
        with pytest.raises(NotFoundError):
            await member_service.add_member(session, ALICE, uuid.uuid4(), MemberCreate(user_id="bob"))

    async def test_system_can_enroll(self, session, org):
        membership = await member_service.add_member(
            session,
            RequestContext.system_context(),
            org.organization.id,
            MemberCreate(user_id="dave"),
        )
        assert membership.user_id == "dave"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReadMembers:
    async def test_member_can_list(self, session, org, with_bob):
        members = await member_service.list_members(session, BOB, org.organization.id)
        assert {m.user_id for m in members} == {"alice", "bob"}

    async def test_get_member(self, session, org, with_bob):
        membership = await member_service.get_member(session, BOB, org.organization.id, "alice")
        assert membership.is_owner is True

    async def test_get_missing_member(self, session, org):
        with pytest.raises(NotFoundError):
            await member_service.get_member(session, ALICE, org.organization.id, "carol")

    async def test_inactive_member_is_treated_as_outsider(self, session, org, with_bob):
        await member_service.update_member(
            session, ALICE, org.organization.id, "bob", MemberUpdate(active=False)
        )
        with pytest.raises(ForbiddenError):
            await member_service.list_members(session, BOB, org.organization.id)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------

class TestUpdateMember:
    async def test_change_role_and_preferences(self, session, org, with_bob):
        manager = _role(org, "Manager")
        updated = await member_service.update_member(
            session,
            ALICE,
            org.organization.id,
            "bob",
            MemberUpdate(role_id=manager.id, preferences={"digest": "weekly"}),
        )
        assert updated.role_id == manager.id
        assert updated.preferences == {"digest": "weekly"}

    async def test_clear_role(self, session, org, with_bob):
        updated = await member_service.update_member(
            session, ALICE, org.organization.id, "bob", MemberUpdate(role_id=None)
        )
        assert updated.role_id is None

    async def test_null_flags_are_ignored(self, session, org, with_bob):
        updated = await member_service.update_member(
            session, ALICE, org.organization.id, "bob", MemberUpdate(active=None)
        )
        assert updated.active is True

    async def test_cannot_promote_while_owner_exists(self, session, org, with_bob):
        with pytest.raises(ConflictError, match="already has an owner"):
            await member_service.update_member(
                session, ALICE, org.organization.id, "bob", MemberUpdate(is_owner=True)
            )

    async def test_cannot_demote_last_owner(self, session, org):
        with pytest.raises(ConflictError, match="last owner"):
            await member_service.update_member(
                session, ALICE, org.organization.id, "alice", MemberUpdate(is_owner=False)
            )

    async def test_cannot_deactivate_owner(self, session, org, with_bob):
        with pytest.raises(ConflictError, match="Cannot deactivate the owner"):
            await member_service.update_member(
                session, ALICE, org.organization.id, "alice", MemberUpdate(active=False)
            )

        owner = await member_service.find_by_org_and_user(session, org.organization.id, "alice")
        assert owner.active is True
        # The owner can still manage the organization
        await member_service.add_member(session, ALICE, org.organization.id, MemberCreate(user_id="carol"))

    async def test_deactivate_after_transfer(self, session, org, with_bob):
        await member_service.transfer_ownership(session, ALICE, org.organization.id, "alice", "bob")
        updated = await member_service.update_member(
            session, BOB, org.organization.id, "alice", MemberUpdate(active=False)
        )
        assert updated.active is False

    async def test_immutable_user_id(self, session, org, with_bob):
        with pytest.raises(BadRequestError, match="user_id"):
            await member_service.update_member(
                session, ALICE, org.organization.id, "bob", MemberUpdate(user_id="carol")
            )

    async def test_immutable_organization_id(self, session, org, with_bob, onboard):
        other = await onboard("carol", "Carol Studio")
        with pytest.raises(BadRequestError, match="organization_id"):
            await member_service.update_member(
                session,
                ALICE,
                org.organization.id,
                "bob",
                MemberUpdate(organization_id=other.organization.id),
            )

    async def test_non_owner_cannot_update(self, session, org, with_bob):
        with pytest.raises(ForbiddenError):
            await member_service.update_member(
                session, BOB, org.organization.id, "bob", MemberUpdate(preferences={})
            )


# ---------------------------------------------------------------------------
# Removal
# ---------------------------------------------------------------------------

class TestRemoveMember:
    async def test_cannot_remove_last_owner(self, session, org):
        with pytest.raises(ConflictError, match="last owner"):
            await member_service.remove_member(session, ALICE, org.organization.id, "alice")

    async def test_remove_unassigns_tasks(self, session, org, with_bob):
        task = await task_service.create_task(
            session,
            ALICE,
            org.organization.id,
            TaskCreate(title="Edit intro", assigned_to=with_bob.id),
        )
        task_id = task.id

        await member_service.remove_member(session, ALICE, org.organization.id, "bob")

        assert await member_service.find_by_org_and_user(session, org.organization.id, "bob") is None
        result = await session.execute(select(Task.assigned_to).where(Task.id == task_id))
        assert result.scalar_one() is None

    async def test_remove_missing_member(self, session, org):
        with pytest.raises(NotFoundError):
            await member_service.remove_member(session, ALICE, org.organization.id, "carol")


# ---------------------------------------------------------------------------
# Ownership transfer
# ---------------------------------------------------------------------------

class TestTransferOwnership:
    async def test_transfer(self, session, org, with_bob):
        previous, new_owner = await member_service.transfer_ownership(
            session, ALICE, org.organization.id, "alice", "bob"
        )
        assert previous.is_owner is False
        assert new_owner.is_owner is True
        assert await _owners(session, org.organization.id) == ["bob"]

        # The previous owner lost owner-only capabilities immediately
        with pytest.raises(ForbiddenError):
            await member_service.add_member(
                session, ALICE, org.organization.id, MemberCreate(user_id="carol")
            )

    async def test_same_user(self, session, org):
        with pytest.raises(BadRequestError):
            await member_service.transfer_ownership(
                session, ALICE, org.organization.id, "alice", "alice"
            )

    async def test_to_inactive_member(self, session, org, with_bob):
        await member_service.update_member(
            session, ALICE, org.organization.id, "bob", MemberUpdate(active=False)
        )
        with pytest.raises(BadRequestError, match="inactive"):
            await member_service.transfer_ownership(
                session, ALICE, org.organization.id, "alice", "bob"
            )
        assert await _owners(session, org.organization.id) == ["alice"]

    async def test_to_non_member(self, session, org):
        with pytest.raises(NotFoundError):
            await member_service.transfer_ownership(
                session, ALICE, org.organization.id, "alice", "carol"
            )

    async def test_by_non_owner(self, session, org, with_bob):
        with pytest.raises(ForbiddenError):
            await member_service.transfer_ownership(
                session, BOB, org.organization.id, "alice", "bob"
            )

    async def test_exactly_one_owner_afterwards(self, session, org, with_bob):
        await member_service.transfer_ownership(session, ALICE, org.organization.id, "alice", "bob")
        result = await session.execute(
            select(func.count())
            .select_from(Membership)
            .where(
                Membership.organization_id == org.organization.id,
                Membership.is_owner == True,  # noqa: E712
            )
        )
        assert result.scalar_one() == 1

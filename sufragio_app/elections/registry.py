from __future__ import annotations

import logging

from django.db import IntegrityError, transaction

from elections.audit import record_event
from elections.exceptions import (
    AlreadyRegisteredError,
    InvalidRoleAssignmentError,
    UserNotFoundError,
)
from elections.models import Participant, VotingSystem
from elections.permissions import Capability, require_capability

logger = logging.getLogger(__name__)


def normalize_identity(value: object) -> str:
    return str(value or "").strip()


def find_participant(*, system: VotingSystem, username: str) -> Participant | None:
    username = normalize_identity(username)
    if not username:
        return None
    return Participant.objects.filter(system=system, username=username).first()


def get_participant(*, system: VotingSystem, username: str, for_update: bool = False) -> Participant:
    username = normalize_identity(username)
    qs = Participant.objects.filter(system=system, username=username)
    if for_update:
        qs = qs.select_for_update()
    participant = qs.first() if username else None
    if participant is None:
        raise UserNotFoundError(f"user {username!r} is not registered")
    return participant


@transaction.atomic
def bootstrap_system(
    *,
    slug: str,
    name: str,
    admin_username: str,
    admin_first_name: str = "",
    admin_last_name: str = "",
) -> VotingSystem:
    """Create a voting system together with its first (approved) admin."""

    slug = normalize_identity(slug)
    admin_username = normalize_identity(admin_username)
    if not admin_username:
        raise UserNotFoundError("an admin username is required")
    if VotingSystem.objects.filter(slug=slug).exists():
        raise AlreadyRegisteredError(f"voting system {slug!r} already exists")

    system = VotingSystem.objects.create(slug=slug, name=name.strip() or slug)
    Participant.objects.create(
        system=system,
        username=admin_username,
        first_name=admin_first_name,
        last_name=admin_last_name,
        role=Participant.Role.admin,
        is_approved=True,
    )
    record_event(
        system=system,
        event_type="system_bootstrapped",
        payload={"admin": admin_username},
        is_public=True,
    )

    logger.info("bootstrap_system: created system=%s admin=%r", system.slug, admin_username)
    return system


@transaction.atomic
def register_user(
    *,
    system: VotingSystem,
    caller: str,
    first_name: str = "",
    last_name: str = "",
) -> Participant:
    """Register the caller in the system registry with an unassigned role."""

    username = normalize_identity(caller)
    if not username:
        raise UserNotFoundError("caller identity is required")

    if Participant.objects.filter(system=system, username=username).exists():
        logger.debug("register_user: rejected duplicate system=%s username=%r", system.slug, username)
        raise AlreadyRegisteredError(f"user {username!r} is already registered")

    try:
        with transaction.atomic():
            participant = Participant.objects.create(
                system=system,
                username=username,
                first_name=first_name.strip(),
                last_name=last_name.strip(),
            )
    except IntegrityError as exc:
        # Another request registered the same identity concurrently.
        raise AlreadyRegisteredError(f"user {username!r} is already registered") from exc

    record_event(system=system, event_type="user_registered", payload={"username": username})

    logger.info("register_user: registered system=%s username=%r", system.slug, username)
    return participant


@transaction.atomic
def assign_role(
    *,
    system: VotingSystem,
    caller: str,
    username: str,
    role: str,
    approved: bool | None = None,
) -> Participant:
    require_capability(system=system, caller=caller, capability=Capability.IS_ADMIN)

    try:
        new_role = Participant.Role(role)
    except ValueError as exc:
        raise InvalidRoleAssignmentError(f"unknown role {role!r}") from exc

    match new_role:
        case Participant.Role.admin:
            raise InvalidRoleAssignmentError("admin rights are only transferred through delegation")
        case Participant.Role.unassigned | Participant.Role.elector | Participant.Role.candidate:
            pass

    target = get_participant(system=system, username=username, for_update=True)
    if target.role == Participant.Role.admin:
        raise InvalidRoleAssignmentError("the current admin's role only changes through delegation")

    target.role = new_role
    update_fields = ["role", "updated_at"]
    if approved is not None:
        target.is_approved = approved
        update_fields.append("is_approved")
    target.save(update_fields=update_fields)

    record_event(
        system=system,
        event_type="role_assigned",
        payload={"username": target.username, "role": new_role.value, "approved": target.is_approved},
    )

    logger.info(
        "assign_role: system=%s actor=%r target=%r role=%s approved=%s",
        system.slug,
        caller,
        target.username,
        new_role.value,
        target.is_approved,
    )
    return target


@transaction.atomic
def deactivate_user(*, system: VotingSystem, caller: str, username: str) -> Participant:
    """Mark a participant inactive. Registry rows are never deleted."""

    require_capability(system=system, caller=caller, capability=Capability.IS_ADMIN)

    target = get_participant(system=system, username=username, for_update=True)
    if target.role == Participant.Role.admin:
        raise InvalidRoleAssignmentError("the current admin cannot be deactivated; delegate first")

    if target.is_active:
        target.is_active = False
        target.save(update_fields=["is_active", "updated_at"])
        record_event(system=system, event_type="user_deactivated", payload={"username": target.username})
        logger.info("deactivate_user: system=%s actor=%r target=%r", system.slug, caller, target.username)

    return target

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass

from django.db import transaction
from django.utils import timezone

from elections.audit import record_event
from elections.elections_services import get_election
from elections.exceptions import (
    ElectionLockedError,
    InvalidRoleAssignmentError,
    InvalidTransitionError,
    MembershipNotFoundError,
)
from elections.models import Election, Membership, VotingSystem
from elections.permissions import Capability, require_capability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingMember:
    membership_id: int
    username: str
    first_name: str
    last_name: str
    requested_at: datetime.datetime


@dataclass(frozen=True)
class AvailableCandidate:
    membership_id: int
    username: str
    first_name: str
    last_name: str


def _membership_kind(kind: str) -> Membership.Kind:
    try:
        return Membership.Kind(kind)
    except ValueError as exc:
        raise InvalidRoleAssignmentError(f"unknown membership kind {kind!r}") from exc


def unverified_members(*, system: VotingSystem, caller: str, election_id: int, kind: str) -> list[PendingMember]:
    """Pending requests of one kind, in the order they were filed."""

    election = get_election(system=system, election_id=election_id)
    require_capability(system=system, caller=caller, capability=Capability.CAN_MANAGE, election=election)

    memberships = (
        Membership.objects.filter(election=election, kind=_membership_kind(kind), status=Membership.Status.pending)
        .select_related("participant")
        .order_by("requested_at", "id")
    )
    return [
        PendingMember(
            membership_id=m.id,
            username=m.participant.username,
            first_name=m.participant.first_name,
            last_name=m.participant.last_name,
            requested_at=m.requested_at,
        )
        for m in memberships
    ]


def available_candidates(*, system: VotingSystem, election_id: int) -> list[AvailableCandidate]:
    # Public read: approved candidates only, and never their counters.
    election = get_election(system=system, election_id=election_id)
    memberships = (
        Membership.objects.filter(
            election=election,
            kind=Membership.Kind.candidate,
            status=Membership.Status.approved,
        )
        .select_related("participant")
        .order_by("requested_at", "id")
    )
    return [
        AvailableCandidate(
            membership_id=m.id,
            username=m.participant.username,
            first_name=m.participant.first_name,
            last_name=m.participant.last_name,
        )
        for m in memberships
    ]


@transaction.atomic
def change_approval_status(
    *,
    system: VotingSystem,
    caller: str,
    election_id: int,
    membership_id: int,
    decision: str,
) -> Membership:
    election = get_election(system=system, election_id=election_id, for_update=True)
    require_capability(system=system, caller=caller, capability=Capability.CAN_MANAGE, election=election)

    match Election.Status(election.status):
        case Election.Status.created:
            pass
        case Election.Status.open | Election.Status.closed:
            raise ElectionLockedError("admission decisions are frozen once the election opens")

    try:
        new_status = Membership.Status(decision)
    except ValueError as exc:
        raise InvalidTransitionError(f"unknown decision {decision!r}") from exc

    match new_status:
        case Membership.Status.approved | Membership.Status.rejected:
            pass
        case Membership.Status.pending:
            raise InvalidTransitionError("a decision must approve or reject the request")

    membership = (
        Membership.objects.select_for_update().filter(election=election, pk=membership_id).first()
    )
    if membership is None:
        raise MembershipNotFoundError(f"membership {membership_id} does not exist in election {election.id}")

    if membership.status != Membership.Status.pending:
        logger.debug(
            "change_approval_status: rejected membership_id=%s current=%s decision=%s",
            membership.id,
            membership.status,
            new_status.value,
        )
        raise InvalidTransitionError(f"membership is already {membership.status}")

    membership.status = new_status
    membership.decided_at = timezone.now()
    membership.decided_by = str(caller).strip()
    membership.save(update_fields=["status", "decided_at", "decided_by"])

    record_event(
        system=system,
        election=election,
        event_type="membership_decided",
        payload={"membership_id": membership.id, "kind": membership.kind, "decision": new_status.value},
    )

    logger.info(
        "change_approval_status: election_id=%s membership_id=%s decision=%s actor=%r",
        election.id,
        membership.id,
        new_status.value,
        caller,
    )
    return membership

from __future__ import annotations

import enum

from elections.exceptions import ElectionNotClosedError, UnauthorizedError
from elections.models import Election, Membership, Participant, VotingSystem


class Capability(enum.Enum):
    IS_ADMIN = "is_admin"
    IS_APPROVED_ELECTOR = "is_approved_elector"
    IS_APPROVED_CANDIDATE = "is_approved_candidate"
    CAN_MANAGE = "can_manage"


ELECTION_SCOPED_CAPABILITIES: frozenset[Capability] = frozenset(
    {
        Capability.IS_APPROVED_ELECTOR,
        Capability.IS_APPROVED_CANDIDATE,
        Capability.CAN_MANAGE,
    }
)


def _active_participant(*, system: VotingSystem, caller: str) -> Participant | None:
    username = str(caller or "").strip()
    if not username:
        return None
    participant = Participant.objects.filter(system=system, username=username).first()
    if participant is None or not participant.is_active:
        return None
    return participant


def _is_acting_admin(participant: Participant) -> bool:
    return participant.role == Participant.Role.admin and participant.is_approved


def _holds_approved_membership(*, participant: Participant, election: Election, kind: Membership.Kind) -> bool:
    return Membership.objects.filter(
        election=election,
        participant=participant,
        kind=kind,
        status=Membership.Status.approved,
    ).exists()


def _granting_participant(
    *,
    system: VotingSystem,
    caller: str,
    capability: Capability,
    election: Election | None,
) -> Participant | None:
    participant = _active_participant(system=system, caller=caller)
    if participant is None:
        return None

    if capability in ELECTION_SCOPED_CAPABILITIES:
        if election is None or election.system_id != system.pk:
            return None

    match capability:
        case Capability.IS_ADMIN:
            allowed = _is_acting_admin(participant)
        case Capability.CAN_MANAGE:
            # The creator manages its elections only while it holds the admin
            # seat; after a delegation the delegate manages all of them.
            allowed = _is_acting_admin(participant)
        case Capability.IS_APPROVED_ELECTOR:
            allowed = _holds_approved_membership(
                participant=participant,
                election=election,
                kind=Membership.Kind.elector,
            )
        case Capability.IS_APPROVED_CANDIDATE:
            allowed = _holds_approved_membership(
                participant=participant,
                election=election,
                kind=Membership.Kind.candidate,
            )
        case _:
            raise ValueError(f"unknown capability {capability!r}")

    return participant if allowed else None


def has_capability(
    *,
    system: VotingSystem,
    caller: str,
    capability: Capability,
    election: Election | None = None,
) -> bool:
    """Decide whether `caller` holds `capability`. Anything unknown denies."""

    return (
        _granting_participant(system=system, caller=caller, capability=capability, election=election)
        is not None
    )


def require_capability(
    *,
    system: VotingSystem,
    caller: str,
    capability: Capability,
    election: Election | None = None,
) -> Participant:
    participant = _granting_participant(system=system, caller=caller, capability=capability, election=election)
    if participant is None:
        raise UnauthorizedError(f"{caller!r} lacks {capability.value}")
    return participant


def ensure_results_disclosable(election: Election) -> None:
    """Gate every read path that could expose per-candidate counts."""

    match Election.Status(election.status):
        case Election.Status.closed:
            return
        case Election.Status.created | Election.Status.open:
            raise ElectionNotClosedError("results are only available once the election is closed")

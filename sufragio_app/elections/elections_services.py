from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from elections.audit import record_event
from elections.exceptions import (
    DuplicateMembershipError,
    ElectionError,
    ElectionLockedError,
    ElectionNotAcceptingRegistrationsError,
    ElectionNotFoundError,
    ElectionNotOpenError,
    InsufficientCandidatesError,
    InvalidElectionNameError,
    InvalidGatewayReferenceError,
    InvalidRoleAssignmentError,
    InvalidScheduleError,
    UnauthorizedError,
    UserNotFoundError,
)
from elections.models import AuditLogEntry, Election, Membership, Participant, VotingSystem
from elections.permissions import Capability, ensure_results_disclosable, require_capability
from elections.registry import get_participant, normalize_identity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApprovedElector:
    username: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class ParticipationCounts:
    votes_cast: int
    approved_electors: int


@dataclass(frozen=True)
class ResultRow:
    membership_id: int
    username: str
    vote_count: int


@dataclass
class AdvanceSummary:
    opened: int = 0
    closed: int = 0
    failures: list[tuple[int, str]] = field(default_factory=list)


def get_election(*, system: VotingSystem, election_id: int, for_update: bool = False) -> Election:
    qs = Election.objects.filter(system=system, pk=election_id)
    if for_update:
        qs = qs.select_for_update()
    election = qs.first()
    if election is None:
        raise ElectionNotFoundError(f"election {election_id} does not exist")
    return election


def _approved_memberships(*, election: Election, kind: Membership.Kind):
    return (
        Membership.objects.filter(election=election, kind=kind, status=Membership.Status.approved)
        .select_related("participant")
        .order_by("requested_at", "id")
    )


@transaction.atomic
def create_election(
    *,
    system: VotingSystem,
    caller: str,
    name: str,
    start_datetime: datetime.datetime | None = None,
    end_datetime: datetime.datetime | None = None,
) -> int:
    require_capability(system=system, caller=caller, capability=Capability.IS_ADMIN)

    name = str(name or "").strip()
    if not name:
        raise InvalidElectionNameError("election name is required")
    if start_datetime is not None and end_datetime is not None and end_datetime <= start_datetime:
        raise InvalidScheduleError("End datetime must be later than the start.")

    election = Election.objects.create(
        system=system,
        name=name,
        start_datetime=start_datetime,
        end_datetime=end_datetime,
        created_by=normalize_identity(caller),
    )
    record_event(
        system=system,
        election=election,
        event_type="election_created",
        payload={
            "name": name,
            "created_by": election.created_by,
            "start_datetime": start_datetime.isoformat() if start_datetime else None,
            "end_datetime": end_datetime.isoformat() if end_datetime else None,
        },
        is_public=True,
    )

    logger.info("create_election: system=%s election_id=%s actor=%r", system.slug, election.id, caller)
    return election.id


@transaction.atomic
def register_in_election(*, system: VotingSystem, caller: str, election_id: int, kind: str) -> Membership:
    """Ask to join an election as candidate or elector; the request starts pending."""

    participant = get_participant(system=system, username=caller, for_update=True)
    if not participant.is_active:
        raise UserNotFoundError(f"user {participant.username!r} is inactive")

    try:
        membership_kind = Membership.Kind(kind)
    except ValueError as exc:
        raise InvalidRoleAssignmentError(f"unknown membership kind {kind!r}") from exc

    election = get_election(system=system, election_id=election_id, for_update=True)
    if election.status != Election.Status.created:
        logger.debug(
            "register_in_election: rejected election_id=%s status=%s username=%r",
            election.id,
            election.status,
            participant.username,
        )
        raise ElectionNotAcceptingRegistrationsError("election is no longer accepting registrations")

    if participant.role == Participant.Role.admin:
        raise UnauthorizedError("the admin cannot take part in the elections it manages")

    if Membership.objects.filter(election=election, participant=participant, kind=membership_kind).exists():
        raise DuplicateMembershipError(
            f"{participant.username!r} already requested to join as {membership_kind.value}"
        )

    membership = Membership.objects.create(election=election, participant=participant, kind=membership_kind)
    record_event(
        system=system,
        election=election,
        event_type="membership_requested",
        payload={"membership_id": membership.id, "kind": membership_kind.value},
    )

    logger.info(
        "register_in_election: election_id=%s membership_id=%s kind=%s username=%r",
        election.id,
        membership.id,
        membership_kind.value,
        participant.username,
    )
    return membership


@transaction.atomic
def delegate_admin(*, system: VotingSystem, caller: str, new_admin_username: str) -> Participant:
    """Hand the single admin seat to another registered participant."""

    current = require_capability(system=system, caller=caller, capability=Capability.IS_ADMIN)
    current = Participant.objects.select_for_update().get(pk=current.pk)

    target = get_participant(system=system, username=new_admin_username, for_update=True)
    if not target.is_active:
        raise UserNotFoundError(f"user {target.username!r} is inactive")
    if target.pk == current.pk:
        raise InvalidRoleAssignmentError(f"{target.username!r} already holds the admin seat")

    # The admin may not take part in elections it manages; that includes
    # requests filed before the seat changed hands.
    live_memberships = Membership.objects.filter(
        participant=target,
        status__in=[Membership.Status.pending, Membership.Status.approved],
    ).exclude(election__status=Election.Status.closed)
    if live_memberships.exists():
        logger.debug(
            "delegate_admin: rejected target=%r with %s live membership(s)",
            target.username,
            live_memberships.count(),
        )
        raise InvalidRoleAssignmentError(
            f"{target.username!r} takes part in an election that is not closed and cannot become admin"
        )

    # Demote first: the partial unique constraint allows one admin row per system.
    current.role = Participant.Role.unassigned
    current.is_approved = False
    current.save(update_fields=["role", "is_approved", "updated_at"])

    target.role = Participant.Role.admin
    target.is_approved = True
    target.save(update_fields=["role", "is_approved", "updated_at"])

    record_event(
        system=system,
        event_type="admin_delegated",
        payload={"previous_admin": current.username, "new_admin": target.username},
        is_public=True,
    )

    logger.info("delegate_admin: system=%s from=%r to=%r", system.slug, current.username, target.username)
    return target


@transaction.atomic
def open_election(*, system: VotingSystem, caller: str, election_id: int) -> Election:
    election = get_election(system=system, election_id=election_id, for_update=True)
    require_capability(system=system, caller=caller, capability=Capability.CAN_MANAGE, election=election)

    match Election.Status(election.status):
        case Election.Status.created:
            pass
        case Election.Status.open | Election.Status.closed:
            raise ElectionLockedError("election has already been opened")

    approved_candidates = _approved_memberships(election=election, kind=Membership.Kind.candidate).count()
    if approved_candidates == 0:
        raise InsufficientCandidatesError("at least one approved candidate is required to open the election")

    election.status = Election.Status.open
    election.opened_at = timezone.now()
    election.save(update_fields=["status", "opened_at"])

    approved_electors = _approved_memberships(election=election, kind=Membership.Kind.elector).count()
    record_event(
        system=system,
        election=election,
        event_type="election_opened",
        payload={"approved_candidates": approved_candidates, "approved_electors": approved_electors},
        is_public=True,
    )

    logger.info("open_election: system=%s election_id=%s actor=%r", system.slug, election.id, caller)
    return election


@transaction.atomic
def close_election(*, system: VotingSystem, caller: str, election_id: int) -> Election:
    election = get_election(system=system, election_id=election_id, for_update=True)
    require_capability(system=system, caller=caller, capability=Capability.CAN_MANAGE, election=election)

    match Election.Status(election.status):
        case Election.Status.open:
            pass
        case Election.Status.created:
            raise ElectionNotOpenError("election must be open to close")
        case Election.Status.closed:
            raise ElectionNotOpenError("election is already closed")

    election.status = Election.Status.closed
    election.closed_at = timezone.now()
    election.save(update_fields=["status", "closed_at"])

    counts = participation_counts(election=election)
    record_event(
        system=system,
        election=election,
        event_type="election_closed",
        payload={"votes_cast": counts.votes_cast, "approved_electors": counts.approved_electors},
        is_public=True,
    )

    logger.info("close_election: system=%s election_id=%s actor=%r", system.slug, election.id, caller)
    return election


def election_status(*, system: VotingSystem, election_id: int) -> Election.Status:
    return Election.Status(get_election(system=system, election_id=election_id).status)


@transaction.atomic
def bind_reporting_gateway(*, system: VotingSystem, caller: str, gateway_identity: str) -> VotingSystem:
    require_capability(system=system, caller=caller, capability=Capability.IS_ADMIN)

    identity = normalize_identity(gateway_identity)
    if not identity:
        raise InvalidGatewayReferenceError("a reporting gateway identity is required")

    locked = VotingSystem.objects.select_for_update().get(pk=system.pk)
    previous = locked.reporting_gateway_identity
    locked.reporting_gateway_identity = identity
    locked.save(update_fields=["reporting_gateway_identity", "updated_at"])

    record_event(
        system=locked,
        event_type="reporting_gateway_bound",
        payload={"gateway": identity, "previous_gateway": previous or None},
        is_public=True,
    )
    system.refresh_from_db(fields=["reporting_gateway_identity", "version"])

    logger.info("bind_reporting_gateway: system=%s gateway=%r previous=%r", system.slug, identity, previous)
    return system


def _require_bound_gateway(*, system: VotingSystem, caller: str) -> None:
    bound = VotingSystem.objects.filter(pk=system.pk).values_list("reporting_gateway_identity", flat=True).first()
    if not bound or normalize_identity(caller) != bound:
        logger.debug("gateway read refused system=%s caller=%r bound=%r", system.slug, caller, bound)
        raise UnauthorizedError("caller is not the bound reporting gateway")


def approved_electors(*, election: Election) -> list[ApprovedElector]:
    return [
        ApprovedElector(
            username=m.participant.username,
            first_name=m.participant.first_name,
            last_name=m.participant.last_name,
        )
        for m in _approved_memberships(election=election, kind=Membership.Kind.elector)
    ]


def participation_counts(*, election: Election) -> ParticipationCounts:
    electors = _approved_memberships(election=election, kind=Membership.Kind.elector)
    return ParticipationCounts(
        votes_cast=electors.filter(has_voted=True).count(),
        approved_electors=electors.count(),
    )


def _result_rows(*, election: Election) -> list[ResultRow]:
    ensure_results_disclosable(election)

    rows = [
        ResultRow(membership_id=m.id, username=m.participant.username, vote_count=m.vote_count)
        for m in _approved_memberships(election=election, kind=Membership.Kind.candidate)
    ]
    # sorted() is stable, so equal counts keep registration order.
    return sorted(rows, key=lambda row: -row.vote_count)


def election_results(*, system: VotingSystem, election_id: int) -> list[ResultRow]:
    """Per-candidate totals, released by the manager itself once closed."""

    return _result_rows(election=get_election(system=system, election_id=election_id))


def gateway_approved_electors(*, system: VotingSystem, caller: str, election_id: int) -> list[ApprovedElector]:
    _require_bound_gateway(system=system, caller=caller)
    return approved_electors(election=get_election(system=system, election_id=election_id))


def gateway_participation_counts(*, system: VotingSystem, caller: str, election_id: int) -> ParticipationCounts:
    _require_bound_gateway(system=system, caller=caller)
    return participation_counts(election=get_election(system=system, election_id=election_id))


def gateway_election_results(*, system: VotingSystem, caller: str, election_id: int) -> list[ResultRow]:
    election = get_election(system=system, election_id=election_id)
    # Closure is checked before the caller so an unclosed election answers
    # the same way to everyone.
    ensure_results_disclosable(election)
    _require_bound_gateway(system=system, caller=caller)
    return _result_rows(election=election)


def public_audit_log(*, system: VotingSystem, election_id: int) -> list[dict[str, object]]:
    election = get_election(system=system, election_id=election_id)
    rows = list(
        AuditLogEntry.objects.filter(election=election, is_public=True)
        .order_by("timestamp", "id")
        .values("timestamp", "event_type", "payload")
    )
    for row in rows:
        row["timestamp"] = row["timestamp"].isoformat()
    return rows


def advance_elections(*, now: datetime.datetime | None = None) -> AdvanceSummary:
    """Open and close elections whose start/end markers have passed.

    Each transition runs as the owning system's current admin, in its own
    transaction, so one failure does not block the rest.
    """

    now = now or timezone.now()
    summary = AdvanceSummary()

    to_open = list(
        Election.objects.filter(status=Election.Status.created, start_datetime__lte=now).select_related("system")
    )
    for election in to_open:
        admin = election.system.current_admin()
        if admin is None:
            summary.failures.append((election.id, "system has no admin"))
            continue
        try:
            open_election(system=election.system, caller=admin.username, election_id=election.id)
        except ElectionError as exc:
            logger.warning("advance_elections: failed to open election_id=%s: %s", election.id, exc)
            summary.failures.append((election.id, str(exc)))
        else:
            summary.opened += 1

    # Requery so elections opened above whose end already passed close too.
    to_close = list(
        Election.objects.filter(status=Election.Status.open, end_datetime__lte=now).select_related("system")
    )
    for election in to_close:
        admin = election.system.current_admin()
        if admin is None:
            summary.failures.append((election.id, "system has no admin"))
            continue
        try:
            close_election(system=election.system, caller=admin.username, election_id=election.id)
        except ElectionError as exc:
            logger.warning("advance_elections: failed to close election_id=%s: %s", election.id, exc)
            summary.failures.append((election.id, str(exc)))
        else:
            summary.closed += 1

    return summary

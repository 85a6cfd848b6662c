"""Read-only reports computed from one election manager's state.

The gateway never touches `elections` models directly: every figure comes
from the manager's gateway-only reads, called with the gateway's own identity,
so a gateway the manager has not bound gets nothing back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction

from elections.elections_services import (
    election_status,
    gateway_approved_electors,
    gateway_election_results,
    gateway_participation_counts,
)
from elections.exceptions import (
    AlreadyRegisteredError,
    ElectionNotOpenError,
    ElectionStillOpenForParticipationDetailError,
    InvalidGatewayReferenceError,
)
from elections.models import Election, VotingSystem
from elections.registry import normalize_identity
from reports.models import ReportingGateway

logger = logging.getLogger(__name__)

_PERCENT_QUANTUM = Decimal("0.01")


@dataclass(frozen=True)
class VoterRow:
    username: str
    first_name: str
    last_name: str


@dataclass(frozen=True)
class ParticipationReport:
    votes_cast: int
    approved_electors: int
    percentage: Decimal


@dataclass(frozen=True)
class CandidateResult:
    username: str
    vote_count: int


@transaction.atomic
def create_reporting_gateway(*, system: VotingSystem, identity: str) -> ReportingGateway:
    identity = normalize_identity(identity)
    if not identity:
        raise InvalidGatewayReferenceError("a reporting gateway identity is required")
    if ReportingGateway.objects.filter(identity=identity).exists():
        raise AlreadyRegisteredError(f"reporting gateway {identity!r} already exists")

    gateway = ReportingGateway.objects.create(identity=identity, system=system)
    logger.info("create_reporting_gateway: identity=%r system=%s", identity, system.slug)
    return gateway


def participation_percentage(*, votes_cast: int, approved_electors: int) -> Decimal:
    if approved_electors <= 0:
        return Decimal("0.00")
    return (Decimal(votes_cast * 100) / Decimal(approved_electors)).quantize(_PERCENT_QUANTUM, rounding=ROUND_HALF_UP)


def voters_report(*, gateway: ReportingGateway, election_id: int) -> list[VoterRow]:
    electors = gateway_approved_electors(system=gateway.system, caller=gateway.identity, election_id=election_id)
    return [VoterRow(username=e.username, first_name=e.first_name, last_name=e.last_name) for e in electors]


def participation_report(*, gateway: ReportingGateway, election_id: int) -> ParticipationReport:
    # Lifecycle state is public; the counts are only fetched once it allows them.
    match election_status(system=gateway.system, election_id=election_id):
        case Election.Status.created:
            raise ElectionNotOpenError("participation is reported once voting has started")
        case Election.Status.open:
            if settings.REPORTS_RESTRICT_PARTICIPATION_UNTIL_CLOSED:
                raise ElectionStillOpenForParticipationDetailError(
                    "participation details are withheld until the election closes"
                )
        case Election.Status.closed:
            pass

    counts = gateway_participation_counts(system=gateway.system, caller=gateway.identity, election_id=election_id)
    return ParticipationReport(
        votes_cast=counts.votes_cast,
        approved_electors=counts.approved_electors,
        percentage=participation_percentage(
            votes_cast=counts.votes_cast,
            approved_electors=counts.approved_electors,
        ),
    )


def result_report(*, gateway: ReportingGateway, election_id: int) -> list[CandidateResult]:
    rows = gateway_election_results(system=gateway.system, caller=gateway.identity, election_id=election_id)
    return [CandidateResult(username=row.username, vote_count=row.vote_count) for row in rows]

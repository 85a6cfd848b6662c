from __future__ import annotations

import logging
from dataclasses import dataclass

from django.db import transaction
from django.db.models import F

from elections.audit import record_event
from elections.elections_services import get_election
from elections.exceptions import (
    AlreadyVotedError,
    CandidateNotApprovedError,
    ElectionNotOpenError,
    MembershipNotFoundError,
)
from elections.models import Election, Membership, VotingSystem
from elections.permissions import Capability, require_capability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoterInfo:
    username: str
    has_voted: bool


@transaction.atomic
def cast_vote(*, system: VotingSystem, caller: str, election_id: int, candidate_membership_id: int) -> None:
    """Record one vote for an approved candidate.

    Only the candidate counter and the elector's `has_voted` flag change; the
    pairing between the two is not written anywhere.
    """

    election = get_election(system=system, election_id=election_id, for_update=True)
    if election.status != Election.Status.open:
        raise ElectionNotOpenError("election is not open")

    voter = require_capability(
        system=system,
        caller=caller,
        capability=Capability.IS_APPROVED_ELECTOR,
        election=election,
    )

    elector = Membership.objects.select_for_update().get(
        election=election,
        participant=voter,
        kind=Membership.Kind.elector,
    )
    if elector.has_voted:
        raise AlreadyVotedError("elector has already voted in this election")

    candidate = (
        Membership.objects.select_for_update()
        .filter(election=election, pk=candidate_membership_id, kind=Membership.Kind.candidate)
        .first()
    )
    if candidate is None:
        raise MembershipNotFoundError(f"candidate {candidate_membership_id} does not exist in election {election.id}")
    if candidate.status != Membership.Status.approved:
        raise CandidateNotApprovedError("candidate is not approved for this election")

    Membership.objects.filter(pk=candidate.pk).update(vote_count=F("vote_count") + 1)
    Membership.objects.filter(pk=elector.pk).update(has_voted=True)

    record_event(
        system=system,
        election=election,
        event_type="vote_cast",
        payload={"elector_membership_id": elector.id},
    )

    logger.info("cast_vote: election_id=%s elector_membership_id=%s", election.id, elector.id)


def approved_voter_info(*, system: VotingSystem, caller: str, election_id: int) -> list[VoterInfo]:
    election = get_election(system=system, election_id=election_id)
    require_capability(system=system, caller=caller, capability=Capability.CAN_MANAGE, election=election)

    electors = (
        Membership.objects.filter(
            election=election,
            kind=Membership.Kind.elector,
            status=Membership.Status.approved,
        )
        .select_related("participant")
        .order_by("requested_at", "id")
    )
    return [VoterInfo(username=m.participant.username, has_voted=m.has_voted) for m in electors]

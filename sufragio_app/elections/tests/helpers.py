from __future__ import annotations

from elections.approval_workflow import change_approval_status
from elections.elections_services import create_election, register_in_election
from elections.models import Membership, VotingSystem
from elections.registry import bootstrap_system, find_participant, register_user


def make_system(*, slug: str = "council", admin: str = "admin") -> VotingSystem:
    return bootstrap_system(slug=slug, name=f"{slug.title()} elections", admin_username=admin)


def register(system: VotingSystem, *usernames: str) -> None:
    for username in usernames:
        if find_participant(system=system, username=username) is None:
            register_user(system=system, caller=username, first_name=username.title(), last_name="Tester")


def admitted_election(
    system: VotingSystem,
    *,
    admin: str = "admin",
    name: str = "Council Vote",
    candidates: tuple[str, ...] = ("carol",),
    electors: tuple[str, ...] = ("victor",),
) -> tuple[int, dict[str, Membership]]:
    """Create an election whose listed candidates and electors are all approved."""

    election_id = create_election(system=system, caller=admin, name=name)
    register(system, *candidates, *electors)

    memberships: dict[str, Membership] = {}
    for username in candidates:
        membership = register_in_election(
            system=system,
            caller=username,
            election_id=election_id,
            kind=Membership.Kind.candidate,
        )
        memberships[username] = change_approval_status(
            system=system,
            caller=admin,
            election_id=election_id,
            membership_id=membership.id,
            decision=Membership.Status.approved,
        )
    for username in electors:
        membership = register_in_election(
            system=system,
            caller=username,
            election_id=election_id,
            kind=Membership.Kind.elector,
        )
        memberships[username] = change_approval_status(
            system=system,
            caller=admin,
            election_id=election_id,
            membership_id=membership.id,
            decision=Membership.Status.approved,
        )
    return election_id, memberships

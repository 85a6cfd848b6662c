from __future__ import annotations

from django.test import TestCase

from elections.elections_services import (
    close_election,
    election_results,
    open_election,
    register_in_election,
)
from elections.exceptions import (
    AlreadyVotedError,
    CandidateNotApprovedError,
    ElectionNotClosedError,
    ElectionNotOpenError,
    MembershipNotFoundError,
    UnauthorizedError,
)
from elections.models import Membership
from elections.tests.helpers import admitted_election, make_system, register
from elections.voting import approved_voter_info, cast_vote


class CastVoteTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.system = make_system()
        self.election_id, self.members = admitted_election(
            self.system,
            candidates=("carol", "chris"),
            electors=("victor", "wendy"),
        )

    def _vote(self, caller: str, candidate: str) -> None:
        cast_vote(
            system=self.system,
            caller=caller,
            election_id=self.election_id,
            candidate_membership_id=self.members[candidate].id,
        )

    def test_vote_before_open_is_rejected(self) -> None:
        with self.assertRaises(ElectionNotOpenError):
            self._vote("victor", "carol")

        self.members["carol"].refresh_from_db()
        self.assertEqual(self.members["carol"].vote_count, 0)

    def test_vote_increments_candidate_and_marks_elector(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        self._vote("victor", "carol")

        carol = Membership.objects.get(pk=self.members["carol"].pk)
        victor = Membership.objects.get(pk=self.members["victor"].pk)
        self.assertEqual(carol.vote_count, 1)
        self.assertTrue(victor.has_voted)
        self.assertEqual(victor.vote_count, 0)

    def test_second_vote_is_rejected_and_leaves_counter_unchanged(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)
        self._vote("victor", "carol")

        with self.assertRaises(AlreadyVotedError):
            self._vote("victor", "chris")
        with self.assertRaises(AlreadyVotedError):
            self._vote("victor", "carol")

        self.assertEqual(Membership.objects.get(pk=self.members["carol"].pk).vote_count, 1)
        self.assertEqual(Membership.objects.get(pk=self.members["chris"].pk).vote_count, 0)

    def test_only_approved_electors_vote(self) -> None:
        register(self.system, "mallory")
        register_in_election(system=self.system, caller="mallory", election_id=self.election_id, kind="elector")
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        for caller in ("mallory", "carol", "admin", "stranger"):
            with self.subTest(caller=caller):
                with self.assertRaises(UnauthorizedError):
                    self._vote(caller, "carol")

    def test_vote_for_unapproved_candidate(self) -> None:
        register(self.system, "dave")
        dave = register_in_election(system=self.system, caller="dave", election_id=self.election_id, kind="candidate")
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        with self.assertRaises(CandidateNotApprovedError):
            cast_vote(
                system=self.system,
                caller="victor",
                election_id=self.election_id,
                candidate_membership_id=dave.id,
            )

        self.assertFalse(Membership.objects.get(pk=self.members["victor"].pk).has_voted)

    def test_vote_for_unknown_or_elector_membership(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        with self.assertRaises(MembershipNotFoundError):
            cast_vote(system=self.system, caller="victor", election_id=self.election_id, candidate_membership_id=99999)
        with self.assertRaises(MembershipNotFoundError):
            self._vote("victor", "wendy")

    def test_vote_after_close_is_rejected(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)
        close_election(system=self.system, caller="admin", election_id=self.election_id)

        with self.assertRaises(ElectionNotOpenError):
            self._vote("wendy", "chris")

    def test_approval_in_one_election_does_not_carry_over(self) -> None:
        other_id, other_members = admitted_election(self.system, name="Other", candidates=("cora",), electors=())
        open_election(system=self.system, caller="admin", election_id=other_id)

        with self.assertRaises(UnauthorizedError):
            cast_vote(
                system=self.system,
                caller="victor",
                election_id=other_id,
                candidate_membership_id=other_members["cora"].id,
            )

    def test_candidate_from_another_election_is_not_found(self) -> None:
        _, other_members = admitted_election(self.system, name="Other", candidates=("cora",), electors=())
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        with self.assertRaises(MembershipNotFoundError):
            cast_vote(
                system=self.system,
                caller="victor",
                election_id=self.election_id,
                candidate_membership_id=other_members["cora"].id,
            )


class ApprovedVoterInfoTests(TestCase):
    def test_manager_sees_who_voted_but_not_for_whom(self) -> None:
        system = make_system()
        election_id, members = admitted_election(system, candidates=("carol",), electors=("victor", "wendy"))
        open_election(system=system, caller="admin", election_id=election_id)
        cast_vote(system=system, caller="wendy", election_id=election_id, candidate_membership_id=members["carol"].id)

        info = approved_voter_info(system=system, caller="admin", election_id=election_id)

        self.assertEqual([(v.username, v.has_voted) for v in info], [("victor", False), ("wendy", True)])
        self.assertEqual(set(vars(info[0])), {"username", "has_voted"})

    def test_requires_manager(self) -> None:
        system = make_system()
        election_id, _ = admitted_election(system)

        with self.assertRaises(UnauthorizedError):
            approved_voter_info(system=system, caller="victor", election_id=election_id)


class ElectionResultsTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.system = make_system()
        self.election_id, self.members = admitted_election(
            self.system,
            candidates=("carol", "chris", "cora"),
            electors=("v1", "v2", "v3"),
        )

    def _vote(self, caller: str, candidate: str) -> None:
        cast_vote(
            system=self.system,
            caller=caller,
            election_id=self.election_id,
            candidate_membership_id=self.members[candidate].id,
        )

    def test_results_are_withheld_until_closed(self) -> None:
        with self.assertRaises(ElectionNotClosedError):
            election_results(system=self.system, election_id=self.election_id)

        open_election(system=self.system, caller="admin", election_id=self.election_id)
        self._vote("v1", "chris")
        with self.assertRaises(ElectionNotClosedError):
            election_results(system=self.system, election_id=self.election_id)

    def test_results_sorted_by_count_then_registration_order(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)
        self._vote("v1", "cora")
        self._vote("v2", "chris")
        self._vote("v3", "cora")
        close_election(system=self.system, caller="admin", election_id=self.election_id)

        rows = election_results(system=self.system, election_id=self.election_id)

        self.assertEqual([(r.username, r.vote_count) for r in rows], [("cora", 2), ("chris", 1), ("carol", 0)])

    def test_ties_keep_registration_order(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)
        self._vote("v1", "cora")
        self._vote("v2", "carol")
        close_election(system=self.system, caller="admin", election_id=self.election_id)

        rows = election_results(system=self.system, election_id=self.election_id)

        self.assertEqual([(r.username, r.vote_count) for r in rows], [("carol", 1), ("cora", 1), ("chris", 0)])

from __future__ import annotations

from django.test import TestCase

from elections.approval_workflow import available_candidates, change_approval_status, unverified_members
from elections.elections_services import close_election, create_election, open_election, register_in_election
from elections.exceptions import (
    ElectionLockedError,
    ElectionNotFoundError,
    InvalidRoleAssignmentError,
    InvalidTransitionError,
    MembershipNotFoundError,
    UnauthorizedError,
)
from elections.models import Membership
from elections.tests.helpers import admitted_election, make_system, register


class ApprovalWorkflowTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.system = make_system()
        register(self.system, "carol", "dave", "erin", "victor")
        self.election_id = create_election(system=self.system, caller="admin", name="Council Vote")
        self.carol = register_in_election(
            system=self.system,
            caller="carol",
            election_id=self.election_id,
            kind="candidate",
        )
        self.dave = register_in_election(
            system=self.system,
            caller="dave",
            election_id=self.election_id,
            kind="candidate",
        )
        self.victor = register_in_election(
            system=self.system,
            caller="victor",
            election_id=self.election_id,
            kind="elector",
        )

    def _decide(self, membership: Membership, decision: str, *, caller: str = "admin") -> Membership:
        return change_approval_status(
            system=self.system,
            caller=caller,
            election_id=self.election_id,
            membership_id=membership.id,
            decision=decision,
        )

    def test_unverified_members_lists_pending_requests_of_one_kind_in_order(self) -> None:
        candidates = unverified_members(
            system=self.system,
            caller="admin",
            election_id=self.election_id,
            kind="candidate",
        )
        electors = unverified_members(
            system=self.system,
            caller="admin",
            election_id=self.election_id,
            kind="elector",
        )

        self.assertEqual([m.username for m in candidates], ["carol", "dave"])
        self.assertEqual([m.membership_id for m in electors], [self.victor.id])
        self.assertEqual(candidates[0].first_name, "Carol")

    def test_decided_requests_leave_the_pending_list(self) -> None:
        self._decide(self.carol, "approved")
        self._decide(self.dave, "rejected")

        pending = unverified_members(
            system=self.system,
            caller="admin",
            election_id=self.election_id,
            kind="candidate",
        )
        self.assertEqual(pending, [])

    def test_unverified_members_requires_manager(self) -> None:
        with self.assertRaises(UnauthorizedError):
            unverified_members(system=self.system, caller="victor", election_id=self.election_id, kind="elector")

    def test_unverified_members_rejects_unknown_kind(self) -> None:
        with self.assertRaises(InvalidRoleAssignmentError):
            unverified_members(system=self.system, caller="admin", election_id=self.election_id, kind="admin")

    def test_approve_records_decision(self) -> None:
        membership = self._decide(self.carol, "approved")

        self.assertEqual(membership.status, Membership.Status.approved)
        self.assertEqual(membership.decided_by, "admin")
        self.assertIsNotNone(membership.decided_at)

    def test_decision_is_final(self) -> None:
        self._decide(self.carol, "rejected")

        with self.assertRaises(InvalidTransitionError):
            self._decide(self.carol, "approved")

        self.carol.refresh_from_db()
        self.assertEqual(self.carol.status, Membership.Status.rejected)

    def test_pending_and_unknown_decisions_are_rejected(self) -> None:
        for decision in ("pending", "maybe"):
            with self.subTest(decision=decision):
                with self.assertRaises(InvalidTransitionError):
                    self._decide(self.carol, decision)

    def test_only_manager_decides(self) -> None:
        with self.assertRaises(UnauthorizedError):
            self._decide(self.carol, "approved", caller="carol")

    def test_unknown_membership(self) -> None:
        with self.assertRaises(MembershipNotFoundError):
            change_approval_status(
                system=self.system,
                caller="admin",
                election_id=self.election_id,
                membership_id=999999,
                decision="approved",
            )

    def test_membership_of_another_election_is_not_found(self) -> None:
        other_id, memberships = admitted_election(self.system, name="Other", candidates=("erin",), electors=())

        with self.assertRaises(MembershipNotFoundError):
            change_approval_status(
                system=self.system,
                caller="admin",
                election_id=self.election_id,
                membership_id=memberships["erin"].id,
                decision="rejected",
            )
        self.assertNotEqual(other_id, self.election_id)

    def test_decisions_frozen_once_open_even_for_admin(self) -> None:
        self._decide(self.carol, "approved")
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        with self.assertRaises(ElectionLockedError):
            self._decide(self.victor, "approved")

        close_election(system=self.system, caller="admin", election_id=self.election_id)
        with self.assertRaises(ElectionLockedError):
            self._decide(self.dave, "rejected")

        self.victor.refresh_from_db()
        self.assertEqual(self.victor.status, Membership.Status.pending)

    def test_available_candidates_only_lists_approved_candidates(self) -> None:
        self._decide(self.carol, "approved")
        self._decide(self.victor, "approved")

        candidates = available_candidates(system=self.system, election_id=self.election_id)

        self.assertEqual([c.membership_id for c in candidates], [self.carol.id])
        self.assertNotIn(self.dave.id, [c.membership_id for c in candidates])
        self.assertFalse(hasattr(candidates[0], "vote_count"))

    def test_available_candidates_unknown_election(self) -> None:
        with self.assertRaises(ElectionNotFoundError):
            available_candidates(system=self.system, election_id=4242)

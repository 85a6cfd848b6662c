from __future__ import annotations

from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings
from django.urls import reverse

from elections.elections_services import bind_reporting_gateway, close_election, open_election
from elections.tests.helpers import admitted_election, make_system
from elections.voting import cast_vote
from reports.gateway import create_reporting_gateway
from reports.models import ReportingGateway


class ReportViewsTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.system = make_system()
        create_reporting_gateway(system=self.system, identity="reports-1")
        bind_reporting_gateway(system=self.system, caller="admin", gateway_identity="reports-1")
        self.election_id, self.members = admitted_election(self.system, electors=("victor", "wendy"))
        self.login("reports-1")

    def login(self, username: str) -> None:
        user, _ = get_user_model().objects.get_or_create(username=username)
        self.client.force_login(user)

    def _url(self, name: str, identity: str = "reports-1", election_id: int | None = None) -> str:
        return reverse(name, kwargs={"identity": identity, "election_id": election_id or self.election_id})

    def test_reports_through_the_lifecycle(self) -> None:
        resp = self.client.get(self._url("reports-voters"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json()["voters"],
            [
                {"username": "victor", "first_name": "Victor", "last_name": "Tester"},
                {"username": "wendy", "first_name": "Wendy", "last_name": "Tester"},
            ],
        )

        self.assertEqual(self.client.get(self._url("reports-participation")).status_code, 409)

        open_election(system=self.system, caller="admin", election_id=self.election_id)
        cast_vote(
            system=self.system,
            caller="wendy",
            election_id=self.election_id,
            candidate_membership_id=self.members["carol"].id,
        )

        resp = self.client.get(self._url("reports-participation"))
        self.assertEqual(
            resp.json(),
            {"ok": True, "votes_cast": 1, "approved_electors": 2, "percentage": "50.00"},
        )
        self.assertEqual(self.client.get(self._url("reports-results")).status_code, 409)

        close_election(system=self.system, caller="admin", election_id=self.election_id)

        resp = self.client.get(self._url("reports-results"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["results"], [{"username": "carol", "vote_count": 1}])

    @override_settings(REPORTS_RESTRICT_PARTICIPATION_UNTIL_CLOSED=True)
    def test_restricted_participation_is_409_while_open(self) -> None:
        open_election(system=self.system, caller="admin", election_id=self.election_id)

        resp = self.client.get(self._url("reports-participation"))

        self.assertEqual(resp.status_code, 409)
        self.assertFalse(resp.json()["ok"])

    def test_unknown_gateway_and_election(self) -> None:
        self.login("ghost")
        self.assertEqual(self.client.get(self._url("reports-voters", identity="ghost")).status_code, 404)

        self.login("reports-1")
        self.assertEqual(self.client.get(self._url("reports-voters", election_id=424242)).status_code, 404)

    def test_unbound_gateway_is_forbidden(self) -> None:
        create_reporting_gateway(system=self.system, identity="reports-2")
        self.login("reports-2")

        resp = self.client.get(self._url("reports-voters", identity="reports-2"))

        self.assertEqual(resp.status_code, 403)

    def test_anonymous_request_for_bound_gateway_is_forbidden(self) -> None:
        self.client.logout()

        for name in ("reports-voters", "reports-participation", "reports-results"):
            with self.subTest(name=name):
                resp = self.client.get(self._url(name))
                self.assertEqual(resp.status_code, 403)
                self.assertNotIn("voters", resp.json())

    def test_other_user_cannot_read_as_the_gateway(self) -> None:
        self.login("victor")

        resp = self.client.get(self._url("reports-voters"))

        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"ok": False, "error": "Not this reporting gateway."})


class CreateReportingGatewayCommandTests(TestCase):
    def test_creates_gateway_and_warns_until_bound(self) -> None:
        make_system(slug="council")
        out = StringIO()

        call_command("create_reporting_gateway", "council", "reports-1", stdout=out)

        self.assertTrue(ReportingGateway.objects.filter(identity="reports-1").exists())
        self.assertIn("Created reporting gateway reports-1 for council.", out.getvalue())
        self.assertIn("has not bound this gateway", out.getvalue())

    def test_unknown_system(self) -> None:
        with self.assertRaises(CommandError):
            call_command("create_reporting_gateway", "missing", "reports-1", stdout=StringIO())

    def test_duplicate_identity(self) -> None:
        make_system(slug="council")
        call_command("create_reporting_gateway", "council", "reports-1", stdout=StringIO())

        with self.assertRaises(CommandError):
            call_command("create_reporting_gateway", "council", "reports-1", stdout=StringIO())

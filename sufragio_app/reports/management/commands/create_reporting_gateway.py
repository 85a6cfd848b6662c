from __future__ import annotations

from typing import override

from django.core.management.base import BaseCommand, CommandError

from elections.exceptions import ElectionError
from elections.models import VotingSystem
from reports.gateway import create_reporting_gateway


class Command(BaseCommand):
    help = "Create a reporting gateway pointed at one voting system."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("system_slug", help="Slug of the voting system the gateway reads from.")
        parser.add_argument("identity", help="Identity the gateway presents to the election manager.")

    @override
    def handle(self, *args, **options) -> None:
        system = VotingSystem.objects.filter(slug=options["system_slug"]).first()
        if system is None:
            raise CommandError(f"Unknown voting system: {options['system_slug']}")

        try:
            gateway = create_reporting_gateway(system=system, identity=options["identity"])
        except ElectionError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(f"Created reporting gateway {gateway.identity} for {system.slug}.")
        if system.reporting_gateway_identity != gateway.identity:
            self.stdout.write(
                "The system has not bound this gateway yet; its admin must bind it before reports are served."
            )

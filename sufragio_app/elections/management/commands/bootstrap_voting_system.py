from __future__ import annotations

from typing import override

from django.core.management.base import BaseCommand, CommandError

from elections.exceptions import ElectionError
from elections.registry import bootstrap_system


class Command(BaseCommand):
    help = "Create a voting system and register its first admin."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument("slug", help="URL slug identifying the voting system.")
        parser.add_argument("admin_username", help="Identity of the initial admin.")
        parser.add_argument("--name", default="", help="Display name (defaults to the slug).")
        parser.add_argument("--first-name", default="", help="Admin first name.")
        parser.add_argument("--last-name", default="", help="Admin last name.")

    @override
    def handle(self, *args, **options) -> None:
        try:
            system = bootstrap_system(
                slug=options["slug"],
                name=options["name"],
                admin_username=options["admin_username"],
                admin_first_name=options["first_name"],
                admin_last_name=options["last_name"],
            )
        except ElectionError as exc:
            raise CommandError(str(exc)) from exc

        self.stdout.write(f"Created voting system {system.slug} with admin {options['admin_username'].strip()}.")

from __future__ import annotations

from typing import override

from django.core.management.base import BaseCommand
from django.utils import timezone

from elections.elections_services import advance_elections
from elections.models import Election


class Command(BaseCommand):
    help = "Open elections whose start_datetime has passed and close those whose end_datetime has passed."

    @override
    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be done without modifying elections.",
        )

    @override
    def handle(self, *args, **options) -> None:
        dry_run: bool = bool(options.get("dry_run"))

        now = timezone.now()

        if dry_run:
            to_open = Election.objects.filter(status=Election.Status.created, start_datetime__lte=now).count()
            to_close = Election.objects.filter(status=Election.Status.open, end_datetime__lte=now).count()
            self.stdout.write(f"[dry-run] Would open {to_open} election(s) and close {to_close} election(s).")
            return

        summary = advance_elections(now=now)
        for election_id, reason in summary.failures:
            self.stderr.write(f"Failed to advance election {election_id}: {reason}")

        self.stdout.write(
            f"Opened {summary.opened} election(s); closed {summary.closed} election(s); "
            f"failed {len(summary.failures)}."
        )

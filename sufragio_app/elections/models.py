from __future__ import annotations

from django.db import models
from django.db.models import F, Q


class VotingSystem(models.Model):
    """One election manager instance.

    Every participant, election and audit entry hangs off exactly one system.
    `version` is bumped by each committed mutation so collaborators can tell
    whether the aggregate state moved under them.
    """

    slug = models.SlugField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    # Opaque identity of the one reporting gateway allowed to call the
    # gateway-only reads. Empty means unbound.
    reporting_gateway_identity = models.CharField(max_length=255, blank=True, default="")
    version = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("slug",)

    def __str__(self) -> str:
        return self.slug

    def current_admin(self) -> Participant | None:
        return self.participants.filter(role=Participant.Role.admin).first()

    def bump_version(self) -> None:
        VotingSystem.objects.filter(pk=self.pk).update(version=F("version") + 1)
        self.refresh_from_db(fields=["version"])


class Participant(models.Model):
    class Role(models.TextChoices):
        unassigned = "unassigned", "Unassigned"
        elector = "elector", "Elector"
        candidate = "candidate", "Candidate"
        admin = "admin", "Admin"

    system = models.ForeignKey(VotingSystem, on_delete=models.PROTECT, related_name="participants")
    username = models.CharField(max_length=255)
    first_name = models.CharField(max_length=255, blank=True, default="")
    last_name = models.CharField(max_length=255, blank=True, default="")
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.unassigned, db_index=True)
    is_approved = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    registered_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["system", "username"],
                name="uniq_participant_system_username",
            ),
            # At most one admin row per system; delegation demotes before it promotes.
            models.UniqueConstraint(
                fields=["system"],
                condition=Q(role="admin"),
                name="uniq_participant_single_admin",
            ),
        ]
        ordering = ("registered_at", "id")

    def __str__(self) -> str:
        return self.username

    def get_full_name(self) -> str:
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.username


class Election(models.Model):
    class Status(models.TextChoices):
        created = "created", "Created"
        open = "open", "Open"
        closed = "closed", "Closed"

    system = models.ForeignKey(VotingSystem, on_delete=models.PROTECT, related_name="elections")
    name = models.CharField(max_length=255)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.created, db_index=True)
    start_datetime = models.DateTimeField(blank=True, null=True)
    end_datetime = models.DateTimeField(blank=True, null=True)
    created_by = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    opened_at = models.DateTimeField(blank=True, null=True)
    closed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(start_datetime__isnull=True)
                    | Q(end_datetime__isnull=True)
                    | Q(end_datetime__gt=F("start_datetime"))
                ),
                name="chk_election_end_after_start",
            ),
        ]
        indexes = [
            models.Index(fields=["system", "status"], name="e_sys_status"),
        ]
        ordering = ("created_at", "id")

    def __str__(self) -> str:
        return f"{self.name} ({self.status})"


class Membership(models.Model):
    """A participant's admission request (and its outcome) for one election."""

    class Kind(models.TextChoices):
        candidate = "candidate", "Candidate"
        elector = "elector", "Elector"

    class Status(models.TextChoices):
        pending = "pending", "Pending"
        approved = "approved", "Approved"
        rejected = "rejected", "Rejected"

    election = models.ForeignKey(Election, on_delete=models.PROTECT, related_name="memberships")
    participant = models.ForeignKey(Participant, on_delete=models.PROTECT, related_name="memberships")
    kind = models.CharField(max_length=16, choices=Kind.choices)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.pending, db_index=True)
    # Candidates only.
    vote_count = models.PositiveIntegerField(default=0)
    # Electors only.
    has_voted = models.BooleanField(default=False)
    requested_at = models.DateTimeField(auto_now_add=True)
    decided_at = models.DateTimeField(blank=True, null=True)
    decided_by = models.CharField(max_length=255, blank=True, default="")

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["election", "participant", "kind"],
                name="uniq_membership_election_participant_kind",
            ),
            models.CheckConstraint(
                condition=(
                    (Q(kind="candidate") & Q(has_voted=False))
                    | (Q(kind="elector") & Q(vote_count=0))
                ),
                name="chk_membership_counters_match_kind",
            ),
        ]
        indexes = [
            models.Index(fields=["election", "kind", "status"], name="m_el_kind_status"),
        ]
        ordering = ("requested_at", "id")

    def __str__(self) -> str:
        return f"{self.participant_id} {self.kind} in {self.election_id} ({self.status})"


class AuditLogEntry(models.Model):
    """Append-only trail of lifecycle events.

    Payloads never carry the candidate an elector chose; `vote_cast` entries
    only record that an elector membership was consumed.
    """

    system = models.ForeignKey(VotingSystem, on_delete=models.PROTECT, related_name="audit_log")
    election = models.ForeignKey(
        Election,
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name="audit_log",
    )
    event_type = models.CharField(max_length=64)
    payload = models.JSONField(blank=True, default=dict)
    is_public = models.BooleanField(default=False)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["election", "timestamp"], name="ale_el_at"),
            models.Index(fields=["event_type"], name="ale_event"),
        ]
        ordering = ("timestamp", "id")

    def __str__(self) -> str:
        return f"{self.event_type} ({self.timestamp})"

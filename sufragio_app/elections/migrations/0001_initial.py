from __future__ import annotations

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="VotingSystem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slug", models.SlugField(max_length=64, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("reporting_gateway_identity", models.CharField(blank=True, default="", max_length=255)),
                ("version", models.PositiveBigIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("slug",),
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("username", models.CharField(max_length=255)),
                ("first_name", models.CharField(blank=True, default="", max_length=255)),
                ("last_name", models.CharField(blank=True, default="", max_length=255)),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("unassigned", "Unassigned"),
                            ("elector", "Elector"),
                            ("candidate", "Candidate"),
                            ("admin", "Admin"),
                        ],
                        db_index=True,
                        default="unassigned",
                        max_length=16,
                    ),
                ),
                ("is_approved", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("registered_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "system",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="participants",
                        to="elections.votingsystem",
                    ),
                ),
            ],
            options={
                "ordering": ("registered_at", "id"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("system", "username"),
                        name="uniq_participant_system_username",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(role="admin"),
                        fields=("system",),
                        name="uniq_participant_single_admin",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[("created", "Created"), ("open", "Open"), ("closed", "Closed")],
                        db_index=True,
                        default="created",
                        max_length=16,
                    ),
                ),
                ("start_datetime", models.DateTimeField(blank=True, null=True)),
                ("end_datetime", models.DateTimeField(blank=True, null=True)),
                ("created_by", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("opened_at", models.DateTimeField(blank=True, null=True)),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "system",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="elections",
                        to="elections.votingsystem",
                    ),
                ),
            ],
            options={
                "ordering": ("created_at", "id"),
                "indexes": [models.Index(fields=["system", "status"], name="e_sys_status")],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(start_datetime__isnull=True)
                            | models.Q(end_datetime__isnull=True)
                            | models.Q(end_datetime__gt=models.F("start_datetime"))
                        ),
                        name="chk_election_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Membership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("candidate", "Candidate"), ("elector", "Elector")],
                        max_length=16,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                        db_index=True,
                        default="pending",
                        max_length=16,
                    ),
                ),
                ("vote_count", models.PositiveIntegerField(default=0)),
                ("has_voted", models.BooleanField(default=False)),
                ("requested_at", models.DateTimeField(auto_now_add=True)),
                ("decided_at", models.DateTimeField(blank=True, null=True)),
                ("decided_by", models.CharField(blank=True, default="", max_length=255)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="memberships",
                        to="elections.election",
                    ),
                ),
                (
                    "participant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="memberships",
                        to="elections.participant",
                    ),
                ),
            ],
            options={
                "ordering": ("requested_at", "id"),
                "indexes": [models.Index(fields=["election", "kind", "status"], name="m_el_kind_status")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("election", "participant", "kind"),
                        name="uniq_membership_election_participant_kind",
                    ),
                    models.CheckConstraint(
                        condition=(
                            (models.Q(kind="candidate") & models.Q(has_voted=False))
                            | (models.Q(kind="elector") & models.Q(vote_count=0))
                        ),
                        name="chk_membership_counters_match_kind",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(max_length=64)),
                ("payload", models.JSONField(blank=True, default=dict)),
                ("is_public", models.BooleanField(default=False)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_log",
                        to="elections.election",
                    ),
                ),
                (
                    "system",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_log",
                        to="elections.votingsystem",
                    ),
                ),
            ],
            options={
                "ordering": ("timestamp", "id"),
                "indexes": [
                    models.Index(fields=["election", "timestamp"], name="ale_el_at"),
                    models.Index(fields=["event_type"], name="ale_event"),
                ],
            },
        ),
    ]

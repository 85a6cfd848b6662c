from __future__ import annotations

from django.contrib import admin

from elections.models import AuditLogEntry, Election, Membership, Participant, VotingSystem


class ReadOnlyModelAdmin(admin.ModelAdmin):
    """Browse-only admin: state changes go through the service layer."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(VotingSystem)
class VotingSystemAdmin(ReadOnlyModelAdmin):
    list_display = ("slug", "name", "reporting_gateway_identity", "version", "created_at")
    search_fields = ("slug", "name")
    ordering = ("slug",)


@admin.register(Participant)
class ParticipantAdmin(ReadOnlyModelAdmin):
    list_display = ("username", "system", "role", "is_approved", "is_active", "registered_at")
    list_filter = ("system", "role", "is_approved", "is_active")
    search_fields = ("username", "first_name", "last_name")


@admin.register(Election)
class ElectionAdmin(ReadOnlyModelAdmin):
    list_display = ("id", "name", "system", "status", "start_datetime", "end_datetime", "created_by")
    list_filter = ("system", "status")
    search_fields = ("name",)


@admin.register(Membership)
class MembershipAdmin(ReadOnlyModelAdmin):
    # vote_count stays out of the admin: counts are only released through
    # the closed-election result reads.
    list_display = ("id", "election", "participant", "kind", "status", "has_voted", "requested_at")
    list_filter = ("kind", "status")
    search_fields = ("participant__username",)
    exclude = ("vote_count",)


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(ReadOnlyModelAdmin):
    list_display = ("timestamp", "system", "election", "event_type", "is_public")
    list_filter = ("event_type", "is_public")
    ordering = ("-timestamp", "-id")

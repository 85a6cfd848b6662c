from __future__ import annotations

from elections.models import AuditLogEntry, Election, VotingSystem


def record_event(
    *,
    system: VotingSystem,
    event_type: str,
    payload: dict[str, object] | None = None,
    election: Election | None = None,
    is_public: bool = False,
) -> AuditLogEntry:
    """Append an audit entry and bump the system version.

    Every committed mutation goes through here, so the version counter and the
    trail cannot drift apart.
    """

    entry = AuditLogEntry.objects.create(
        system=system,
        election=election,
        event_type=event_type,
        payload=payload or {},
        is_public=is_public,
    )
    system.bump_version()
    return entry

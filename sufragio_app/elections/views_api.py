from __future__ import annotations

import dataclasses
import datetime
import functools
import json
import logging
from collections.abc import Callable

from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.http import require_GET, require_POST

from elections import approval_workflow, elections_services, registry, voting
from elections.exceptions import (
    ConflictError,
    ElectionError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from elections.models import Election, VotingSystem

logger = logging.getLogger(__name__)


class PayloadError(ValueError):
    """The request body could not be turned into service arguments."""


def error_status(exc: ElectionError) -> int:
    match exc:
        case UnauthorizedError():
            return 403
        case NotFoundError():
            return 404
        case InvalidStateError() | ConflictError():
            return 409
        case _:
            return 400


def error_response(exc: ElectionError) -> JsonResponse:
    return JsonResponse({"ok": False, "error": str(exc)}, status=error_status(exc))


def _payload(request) -> dict[str, object]:
    if request.content_type and request.content_type.startswith("application/json"):
        raw = request.body.decode("utf-8") if request.body else "{}"
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise PayloadError(f"invalid JSON body: {exc.msg}") from exc
        if not isinstance(data, dict):
            raise PayloadError("JSON body must be an object")
        return data
    return request.POST.dict()


def _required_str(data: dict[str, object], key: str) -> str:
    value = str(data.get(key) or "").strip()
    if not value:
        raise PayloadError(f"{key} is required")
    return value


def _required_int(data: dict[str, object], key: str) -> int:
    raw = data.get(key)
    if isinstance(raw, bool):
        raise PayloadError(f"{key} must be an integer")
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"{key} must be an integer") from exc


def _optional_bool(data: dict[str, object], key: str) -> bool | None:
    raw = data.get(key)
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        return raw
    value = str(raw).strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise PayloadError(f"{key} must be a boolean")


def _optional_datetime(data: dict[str, object], key: str) -> datetime.datetime | None:
    raw = str(data.get(key) or "").strip()
    if not raw:
        return None
    try:
        value = parse_datetime(raw)
    except ValueError as exc:
        raise PayloadError(f"{key} is not a valid datetime") from exc
    if value is None:
        raise PayloadError(f"{key} is not a valid datetime")
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def _election_json(election: Election) -> dict[str, object]:
    return {
        "election_id": election.id,
        "name": election.name,
        "status": election.status,
        "start_datetime": election.start_datetime.isoformat() if election.start_datetime else None,
        "end_datetime": election.end_datetime.isoformat() if election.end_datetime else None,
    }


def api_endpoint(*, public: bool = False) -> Callable:
    """Resolve the voting system and caller, and map service errors to JSON.

    The wrapped view is called as `view(request, system, caller, **kwargs)`.
    `caller` is the logged-in username, or "" on public endpoints.
    """

    def decorator(view: Callable) -> Callable:
        @functools.wraps(view)
        def wrapper(request, system_slug: str, *args, **kwargs) -> JsonResponse:
            system = VotingSystem.objects.filter(slug=system_slug).first()
            if system is None:
                return JsonResponse({"ok": False, "error": "Unknown voting system."}, status=404)

            caller = ""
            if request.user.is_authenticated:
                caller = str(request.user.get_username() or "").strip()
            if not public and not caller:
                return JsonResponse({"ok": False, "error": "Authentication required."}, status=403)

            try:
                return view(request, system, caller, *args, **kwargs)
            except PayloadError as exc:
                return JsonResponse({"ok": False, "error": str(exc)}, status=400)
            except ElectionError as exc:
                logger.debug("%s rejected for %r: %s", view.__name__, caller, exc)
                return error_response(exc)

        return wrapper

    return decorator


@require_POST
@api_endpoint()
def user_register(request, system: VotingSystem, caller: str) -> JsonResponse:
    data = _payload(request)
    participant = registry.register_user(
        system=system,
        caller=caller,
        first_name=str(data.get("first_name") or ""),
        last_name=str(data.get("last_name") or ""),
    )
    return JsonResponse({"ok": True, "username": participant.username, "role": participant.role}, status=201)


@require_POST
@api_endpoint()
def user_assign_role(request, system: VotingSystem, caller: str, username: str) -> JsonResponse:
    data = _payload(request)
    participant = registry.assign_role(
        system=system,
        caller=caller,
        username=username,
        role=_required_str(data, "role"),
        approved=_optional_bool(data, "approved"),
    )
    return JsonResponse(
        {"ok": True, "username": participant.username, "role": participant.role, "approved": participant.is_approved}
    )


@require_POST
@api_endpoint()
def user_deactivate(request, system: VotingSystem, caller: str, username: str) -> JsonResponse:
    participant = registry.deactivate_user(system=system, caller=caller, username=username)
    return JsonResponse({"ok": True, "username": participant.username, "active": participant.is_active})


@require_POST
@api_endpoint()
def admin_delegate(request, system: VotingSystem, caller: str) -> JsonResponse:
    data = _payload(request)
    new_admin = elections_services.delegate_admin(
        system=system,
        caller=caller,
        new_admin_username=_required_str(data, "username"),
    )
    return JsonResponse({"ok": True, "admin": new_admin.username})


@require_POST
@api_endpoint()
def gateway_bind(request, system: VotingSystem, caller: str) -> JsonResponse:
    data = _payload(request)
    system = elections_services.bind_reporting_gateway(
        system=system,
        caller=caller,
        gateway_identity=_required_str(data, "identity"),
    )
    return JsonResponse({"ok": True, "gateway": system.reporting_gateway_identity})


@require_GET
@api_endpoint(public=True)
def election_list(request, system: VotingSystem, caller: str) -> JsonResponse:
    elections = Election.objects.filter(system=system).order_by("created_at", "id")
    return JsonResponse({"ok": True, "version": system.version, "elections": [_election_json(e) for e in elections]})


@require_POST
@api_endpoint()
def election_create(request, system: VotingSystem, caller: str) -> JsonResponse:
    data = _payload(request)
    election_id = elections_services.create_election(
        system=system,
        caller=caller,
        name=_required_str(data, "name"),
        start_datetime=_optional_datetime(data, "start_datetime"),
        end_datetime=_optional_datetime(data, "end_datetime"),
    )
    return JsonResponse({"ok": True, "election_id": election_id}, status=201)


@require_GET
@api_endpoint(public=True)
def election_detail(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    election = elections_services.get_election(system=system, election_id=election_id)
    return JsonResponse({"ok": True, **_election_json(election)})


@require_POST
@api_endpoint()
def election_join(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    data = _payload(request)
    membership = elections_services.register_in_election(
        system=system,
        caller=caller,
        election_id=election_id,
        kind=_required_str(data, "kind"),
    )
    return JsonResponse(
        {"ok": True, "membership_id": membership.id, "kind": membership.kind, "status": membership.status},
        status=201,
    )


@require_GET
@api_endpoint()
def election_pending(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    kind = str(request.GET.get("kind") or "").strip()
    if not kind:
        return JsonResponse({"ok": False, "error": "kind is required"}, status=400)

    members = approval_workflow.unverified_members(
        system=system,
        caller=caller,
        election_id=election_id,
        kind=kind,
    )
    results = []
    for m in members:
        row = dataclasses.asdict(m)
        row["requested_at"] = m.requested_at.isoformat()
        results.append(row)
    return JsonResponse({"ok": True, "members": results})


@require_POST
@api_endpoint()
def membership_decide(request, system: VotingSystem, caller: str, election_id: int, membership_id: int) -> JsonResponse:
    data = _payload(request)
    membership = approval_workflow.change_approval_status(
        system=system,
        caller=caller,
        election_id=election_id,
        membership_id=membership_id,
        decision=_required_str(data, "decision"),
    )
    return JsonResponse({"ok": True, "membership_id": membership.id, "status": membership.status})


@require_GET
@api_endpoint(public=True)
def election_candidates(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    candidates = approval_workflow.available_candidates(system=system, election_id=election_id)
    return JsonResponse({"ok": True, "candidates": [dataclasses.asdict(c) for c in candidates]})


@require_POST
@api_endpoint()
def election_open(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    election = elections_services.open_election(system=system, caller=caller, election_id=election_id)
    return JsonResponse({"ok": True, **_election_json(election)})


@require_POST
@api_endpoint()
def election_close(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    election = elections_services.close_election(system=system, caller=caller, election_id=election_id)
    return JsonResponse({"ok": True, **_election_json(election)})


@require_POST
@api_endpoint()
def election_vote(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    data = _payload(request)
    voting.cast_vote(
        system=system,
        caller=caller,
        election_id=election_id,
        candidate_membership_id=_required_int(data, "candidate_membership_id"),
    )
    # No receipt: the response must not echo the chosen candidate.
    return JsonResponse({"ok": True, "election_id": election_id})


@require_GET
@api_endpoint()
def election_voters(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    voters = voting.approved_voter_info(system=system, caller=caller, election_id=election_id)
    return JsonResponse({"ok": True, "voters": [dataclasses.asdict(v) for v in voters]})


@require_GET
@api_endpoint(public=True)
def election_results(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    rows = elections_services.election_results(system=system, election_id=election_id)
    return JsonResponse({"ok": True, "results": [dataclasses.asdict(r) for r in rows]})


@require_GET
@api_endpoint(public=True)
def election_audit(request, system: VotingSystem, caller: str, election_id: int) -> JsonResponse:
    entries = elections_services.public_audit_log(system=system, election_id=election_id)
    return JsonResponse({"ok": True, "entries": entries})

from __future__ import annotations

import dataclasses
import functools
import logging
from collections.abc import Callable

from django.http import JsonResponse
from django.views.decorators.http import require_GET

from elections.exceptions import ElectionError
from elections.views_api import error_response
from reports import gateway as reports
from reports.models import ReportingGateway

logger = logging.getLogger(__name__)


def gateway_endpoint(view: Callable) -> Callable:
    """Authenticate the gateway named in the URL and map service errors to JSON.

    The request must come from a logged-in user whose username is the gateway
    identity; the identity in the URL alone is not a credential. The wrapped
    view is called as `view(request, gateway, election_id)`.
    """

    @functools.wraps(view)
    def wrapper(request, identity: str, election_id: int) -> JsonResponse:
        caller = ""
        if request.user.is_authenticated:
            caller = str(request.user.get_username() or "").strip()
        if not caller:
            return JsonResponse({"ok": False, "error": "Authentication required."}, status=403)
        if caller != identity:
            logger.debug("%s refused: caller=%r identity=%r", view.__name__, caller, identity)
            return JsonResponse({"ok": False, "error": "Not this reporting gateway."}, status=403)

        gateway = ReportingGateway.objects.select_related("system").filter(identity=identity).first()
        if gateway is None:
            return JsonResponse({"ok": False, "error": "Unknown reporting gateway."}, status=404)

        try:
            return view(request, gateway, election_id)
        except ElectionError as exc:
            return error_response(exc)

    return wrapper


@require_GET
@gateway_endpoint
def voters_report(request, gateway: ReportingGateway, election_id: int) -> JsonResponse:
    rows = reports.voters_report(gateway=gateway, election_id=election_id)
    return JsonResponse({"ok": True, "voters": [dataclasses.asdict(row) for row in rows]})


@require_GET
@gateway_endpoint
def participation_report(request, gateway: ReportingGateway, election_id: int) -> JsonResponse:
    report = reports.participation_report(gateway=gateway, election_id=election_id)
    return JsonResponse(
        {
            "ok": True,
            "votes_cast": report.votes_cast,
            "approved_electors": report.approved_electors,
            "percentage": str(report.percentage),
        }
    )


@require_GET
@gateway_endpoint
def result_report(request, gateway: ReportingGateway, election_id: int) -> JsonResponse:
    rows = reports.result_report(gateway=gateway, election_id=election_id)
    return JsonResponse({"ok": True, "results": [dataclasses.asdict(row) for row in rows]})

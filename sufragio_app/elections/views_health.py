import logging

from django.db import DatabaseError
from django.http import HttpResponse

from elections.models import VotingSystem

logger = logging.getLogger(__name__)


def healthz(request):
    return HttpResponse("ok", content_type="text/plain")


def readyz(request):
    # Touching the elections schema catches both an unreachable database and
    # one whose migrations have not been applied yet.
    try:
        VotingSystem.objects.only("pk").first()
    except DatabaseError:
        logger.warning("readyz: elections schema unavailable", exc_info=True)
        return HttpResponse("db unavailable", status=503, content_type="text/plain")

    return HttpResponse("ok", content_type="text/plain")

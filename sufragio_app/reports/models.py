from __future__ import annotations

from django.db import models

from elections.models import VotingSystem


class ReportingGateway(models.Model):
    # The system is fixed at construction time; a gateway never follows a
    # different election manager.
    identity = models.CharField(max_length=255, unique=True)
    system = models.ForeignKey(VotingSystem, on_delete=models.PROTECT, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("identity",)

    def __str__(self) -> str:
        return f"{self.identity} -> {self.system_id}"

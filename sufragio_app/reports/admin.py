from django.contrib import admin

from elections.admin import ReadOnlyModelAdmin
from reports.models import ReportingGateway


@admin.register(ReportingGateway)
class ReportingGatewayAdmin(ReadOnlyModelAdmin):
    list_display = ("identity", "system", "created_at")
    search_fields = ("identity",)

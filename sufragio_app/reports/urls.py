from django.urls import path

from reports import views_reports

urlpatterns = [
    path(
        "<str:identity>/elections/<int:election_id>/voters/",
        views_reports.voters_report,
        name="reports-voters",
    ),
    path(
        "<str:identity>/elections/<int:election_id>/participation/",
        views_reports.participation_report,
        name="reports-participation",
    ),
    path(
        "<str:identity>/elections/<int:election_id>/results/",
        views_reports.result_report,
        name="reports-results",
    ),
]

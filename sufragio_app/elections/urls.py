from django.urls import path

from elections import views_api

urlpatterns = [
    path("register/", views_api.user_register, name="api-user-register"),
    path("users/<str:username>/role/", views_api.user_assign_role, name="api-user-role"),
    path("users/<str:username>/deactivate/", views_api.user_deactivate, name="api-user-deactivate"),
    path("admin/delegate/", views_api.admin_delegate, name="api-admin-delegate"),
    path("gateway/", views_api.gateway_bind, name="api-gateway-bind"),
    path("elections/", views_api.election_list, name="api-election-list"),
    path("elections/new/", views_api.election_create, name="api-election-create"),
    path("elections/<int:election_id>/", views_api.election_detail, name="api-election-detail"),
    path("elections/<int:election_id>/join/", views_api.election_join, name="api-election-join"),
    path("elections/<int:election_id>/pending/", views_api.election_pending, name="api-election-pending"),
    path(
        "elections/<int:election_id>/memberships/<int:membership_id>/decision/",
        views_api.membership_decide,
        name="api-membership-decide",
    ),
    path("elections/<int:election_id>/candidates/", views_api.election_candidates, name="api-election-candidates"),
    path("elections/<int:election_id>/open/", views_api.election_open, name="api-election-open"),
    path("elections/<int:election_id>/close/", views_api.election_close, name="api-election-close"),
    path("elections/<int:election_id>/vote/", views_api.election_vote, name="api-election-vote"),
    path("elections/<int:election_id>/voters/", views_api.election_voters, name="api-election-voters"),
    path("elections/<int:election_id>/results/", views_api.election_results, name="api-election-results"),
    path("elections/<int:election_id>/audit/", views_api.election_audit, name="api-election-audit"),
]

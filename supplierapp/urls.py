from django.urls import path

from .views import (
    DashboardView,
    ContractListView, ContractCreateView, ContractDetailView, ContractDeleteView,
    AnalyticsView,
    AdminIssuesView, AdminIssueDeleteView,
    ProfileView, SetLanguageView, ToggleThemeView,
    SignupView, LoginView, LogoutView,
    )

urlpatterns = [
    path("dashboard/", DashboardView.as_view(), name="dashboard"),

    # contracts
    path("contracts/", ContractListView.as_view(), name="contract_list"),
    path("contracts/new/", ContractCreateView.as_view(), name="contract_create"),
    path("contracts/<str:contract_id>/", ContractDetailView.as_view(), name="contract_detail"),
    path("contracts/<str:contract_id>/delete/", ContractDeleteView.as_view(), name="contract_delete"),

    path("analytics/", AnalyticsView.as_view(), name="analytics"),

    # issue administration
    path("issues/", AdminIssuesView.as_view(), name="admin_issues"),
    path("issues/<str:issue_id>/delete/", AdminIssueDeleteView.as_view(), name="admin_issue_delete"),

    path("profile/", ProfileView.as_view(), name="profile"),
    path("preferences/language/", SetLanguageView.as_view(), name="set_language"),
    path("preferences/theme/", ToggleThemeView.as_view(), name="toggle_theme"),

    path("signup/", SignupView.as_view(), name="signup"),
    path("login/", LoginView.as_view(), name="login"),
    path("logout/", LogoutView.as_view(), name="logout"),
]

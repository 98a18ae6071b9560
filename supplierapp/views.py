import logging
from functools import lru_cache

from django.contrib import messages
from django.core.exceptions import PermissionDenied
from django.http import Http404
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views import View

from .analytics import (
    box_optimization_insight,
    efficiency_insight,
    generate_insights,
    issue_metrics,
    items_per_kg,
    monthly_trends,
    status_distribution,
    summarize_contracts,
    weekly_activity,
)
from .auth_middleware import store_session_context
from .charts import CHART_TYPES, activity_figure, efficiency_figure, status_figure, to_fragment, trend_figure
from .exceptions import ContractValidationError, NotFoundError, QRCodeValidationError, StoreError
from .models import CONTRACT_STATUSES, SEVERITIES
from .services import (
    RESOLUTION_FILTERS,
    SEVERITY_FILTERS,
    STEPPER_STATUSES,
    CognitoService,
    build_services,
    filter_by_resolution,
    filter_by_severity,
    filter_contracts,
    has_pending_change,
    stepper_selection,
)
from .translations import normalize_language

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong. Please try again."


# -------------------------------------------------------------------
# Service wiring
# -------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_services():
    return build_services()


def contract_service():
    return get_services()["contracts"]


def issue_service():
    return get_services()["issues"]


def audit_service():
    return get_services()["audit"]


def _contract_or_404(session_user, contract_id):
    try:
        return contract_service().get(session_user, contract_id)
    except NotFoundError:
        raise Http404("Contract not found")


# -------------------------------------------------------------------
# Home / Dashboard
# -------------------------------------------------------------------

class DashboardView(View):
    def get(self, request):
        user = request.session_user
        contracts, activity = [], []
        try:
            contracts = contract_service().list_visible(user)
            activity = audit_service().visible_to(user, limit=5)
        except StoreError as e:
            messages.error(request, str(e))

        context = {
            "summary": summarize_contracts(contracts),
            "recent_contracts": contracts[:3],
            "activity": activity,
        }
        return render(request, "supplierapp/dashboard.html", context)


# -------------------------------------------------------------------
# Contracts
# -------------------------------------------------------------------

class ContractListView(View):
    def get(self, request):
        search = request.GET.get("q", "").strip()
        status = request.GET.get("status", "all")
        if status != "all" and status not in CONTRACT_STATUSES:
            status = "all"

        contracts = []
        try:
            contracts = contract_service().list_visible(request.session_user)
        except StoreError as e:
            messages.error(request, str(e))

        context = {
            "contracts": filter_contracts(contracts, search, status),
            "has_any": bool(contracts),
            "search": search,
            "status": status,
            "statuses": CONTRACT_STATUSES,
        }
        return render(request, "supplierapp/contract_list.html", context)


class ContractCreateView(View):
    template_name = "supplierapp/contract_form.html"

    def render_form(self, request, data=None, errors=None, status=200):
        context = {
            "data": data or {},
            "errors": errors or {},
            "statuses": CONTRACT_STATUSES,
        }
        return render(request, self.template_name, context, status=status)

    def get(self, request):
        return self.render_form(request)

    def post(self, request):
        data = request.POST
        qr_file = request.FILES.get("qr_code")
        try:
            contract, qr_ok = contract_service().create(request.session_user, data, qr_file)
        except ContractValidationError as e:
            return self.render_form(request, data, e.errors, status=400)
        except QRCodeValidationError as e:
            return self.render_form(request, data, {"qr_code": str(e)}, status=400)
        except StoreError as e:
            messages.error(request, f"Contract was not created: {e}")
            return self.render_form(request, data)
        except Exception:
            logger.exception("Unexpected error creating contract")
            messages.error(request, GENERIC_ERROR)
            return self.render_form(request, data)

        if qr_ok:
            messages.success(request, "Contract created successfully.")
        else:
            messages.warning(request, "Contract created, but the QR code could not be uploaded.")
        return redirect("contract_detail", contract_id=contract.id)


class ContractDetailView(View):
    template_name = "supplierapp/contract_detail.html"

    def selection(self, request, contract):
        """Status/progress pair picked on the stepper, defaulting to the stored pair."""
        status, progress = contract.status, contract.progress
        picked = request.GET.get("status")
        custom = request.GET.get("progress")
        if picked and custom is not None and (picked in STEPPER_STATUSES or picked == contract.status):
            # slider moves keep the already selected status
            status = picked
        elif picked:
            try:
                status, progress = stepper_selection(picked)
            except ValueError:
                messages.error(request, "That status cannot be selected from the stepper.")
        if custom is not None:
            try:
                progress = max(0, min(100, int(custom)))
            except ValueError:
                pass
        return status, progress

    def get(self, request, contract_id):
        user = request.session_user
        contract = _contract_or_404(user, contract_id)
        status, progress = self.selection(request, contract)

        severity = request.GET.get("severity", "all")
        issues, activity = [], []
        try:
            issues = issue_service().list_for_contract(contract.id)
            activity = audit_service().recent(limit=10, contract_id=contract.id)
        except StoreError as e:
            messages.error(request, str(e))

        context = {
            "contract": contract,
            "qr_url": contract_service().qr_image_url(contract) if contract.qr_code else None,
            "selected_status": status,
            "selected_progress": progress,
            "pending": has_pending_change(contract, status, progress),
            "stepper_statuses": STEPPER_STATUSES,
            "statuses": CONTRACT_STATUSES,
            "issues": filter_by_severity(issues, severity),
            "issue_count": len(issues),
            "severity": severity,
            "severity_filters": SEVERITY_FILTERS,
            "severities": SEVERITIES,
            "activity": activity,
        }
        return render(request, self.template_name, context)

    def post(self, request, contract_id):
        action = (request.POST.get("action") or "").lower()
        handlers = {
            "save_progress": self.save_progress,
            "add_issue": self.add_issue,
            "toggle_issue": self.toggle_issue,
        }
        handler = handlers.get(action)
        if handler is None:
            messages.error(request, "Invalid action.")
            return redirect("contract_detail", contract_id=contract_id)

        try:
            handler(request, contract_id)
        except NotFoundError:
            raise Http404("Not found")
        except (Http404, PermissionDenied):
            raise
        except (ValueError, StoreError) as e:
            messages.error(request, str(e))
        except Exception:
            logger.exception("Unexpected error handling %s on contract %s", action, contract_id)
            messages.error(request, GENERIC_ERROR)
        return redirect("contract_detail", contract_id=contract_id)

    def save_progress(self, request, contract_id):
        user = request.session_user
        status = request.POST.get("status", "")
        progress = request.POST.get("progress", "")
        contract = _contract_or_404(user, contract_id)
        try:
            pending = has_pending_change(contract, status, int(progress))
        except ValueError:
            raise ValueError("Progress must be a whole number")
        if not pending:
            messages.info(request, "No changes to save.")
            return
        contract_service().update_progress(user, contract_id, progress, status)
        messages.success(request, "Progress updated.")

    def add_issue(self, request, contract_id):
        issue_service().create(
            request.session_user,
            contract_id,
            request.POST.get("title", ""),
            request.POST.get("description", ""),
            request.POST.get("severity", "minor"),
        )
        messages.success(request, "Issue reported.")

    def toggle_issue(self, request, contract_id):
        resolved = request.POST.get("resolved") == "true"
        issue_service().set_resolved(request.session_user, request.POST.get("issue_id", ""), resolved)
        messages.success(request, "Issue marked resolved." if resolved else "Issue reopened.")


class ContractDeleteView(View):
    template_name = "supplierapp/contract_confirm_delete.html"

    def get(self, request, contract_id):
        contract = _contract_or_404(request.session_user, contract_id)
        return render(request, self.template_name, {"contract": contract})

    def post(self, request, contract_id):
        try:
            contract_service().delete(request.session_user, contract_id)
        except NotFoundError:
            raise Http404("Contract not found")
        except StoreError as e:
            messages.error(request, f"Error deleting contract: {e}")
            return redirect("contract_detail", contract_id=contract_id)
        messages.success(request, "Contract deleted successfully.")
        return redirect("contract_list")


# -------------------------------------------------------------------
# Analytics
# -------------------------------------------------------------------

class AnalyticsView(View):
    def get(self, request):
        user = request.session_user
        chart_type = request.GET.get("chart", "line")
        if chart_type not in CHART_TYPES:
            chart_type = "line"

        contracts, issues, logs = [], None, []
        try:
            contracts = contract_service().list_visible(user)
            visible_ids = {c.id for c in contracts}
            issues = [i for i in issue_service().list_all() if user.is_admin or i.contract_id in visible_ids]
            logs = audit_service().visible_to(user)
        except StoreError as e:
            messages.error(request, str(e))

        summary = summarize_contracts(contracts)
        metrics = issue_metrics(issues) if issues is not None else None
        trends = monthly_trends(contracts)
        distribution = status_distribution(contracts)
        weeks = weekly_activity(logs)
        theme = user.theme

        context = {
            "summary": summary,
            "issue_metrics": metrics,
            "insights": generate_insights(summary, metrics),
            "distribution": distribution,
            "trends": trends,
            "weeks": weeks,
            "chart_type": chart_type,
            "chart_types": CHART_TYPES,
            "items_per_kg": items_per_kg(summary.total_items_shipped, summary.total_weight_shipped),
            "efficiency_text": efficiency_insight(summary.total_items_shipped, summary.total_weight_shipped),
            "box_text": box_optimization_insight(summary.avg_items_per_box),
            "trend_chart": to_fragment(trend_figure(trends, chart_type, theme)) if trends else "",
            "status_chart": to_fragment(status_figure(distribution, theme)) if contracts else "",
            "efficiency_chart": to_fragment(efficiency_figure(summary, theme)) if contracts else "",
            "activity_chart": to_fragment(activity_figure(weeks, theme)) if weeks else "",
        }
        return render(request, "supplierapp/analytics.html", context)


# -------------------------------------------------------------------
# Issue administration
# -------------------------------------------------------------------

class AdminIssuesView(View):
    template_name = "supplierapp/admin_issues.html"

    def get(self, request):
        mode = request.GET.get("filter", "all")
        if mode not in RESOLUTION_FILTERS:
            mode = "all"

        issues = []
        try:
            issues = issue_service().list_all_with_titles(request.session_user)
        except StoreError as e:
            messages.error(request, str(e))

        counts = {m: len(filter_by_resolution(issues, m)) for m in RESOLUTION_FILTERS}
        context = {
            "issues": filter_by_resolution(issues, mode),
            "filter": mode,
            "filters": [(m, counts[m]) for m in RESOLUTION_FILTERS],
        }
        return render(request, self.template_name, context)

    def post(self, request):
        issue_id = request.POST.get("issue_id", "")
        resolved = request.POST.get("resolved") == "true"
        try:
            issue_service().set_resolved(request.session_user, issue_id, resolved)
            messages.success(request, "Issue marked resolved." if resolved else "Issue reopened.")
        except NotFoundError:
            messages.error(request, "Issue no longer exists.")
        except StoreError as e:
            messages.error(request, f"Error updating issue: {e}")
        mode = request.POST.get("filter", "all")
        return redirect(f"{request.path}?filter={mode if mode in RESOLUTION_FILTERS else 'all'}")


class AdminIssueDeleteView(View):
    template_name = "supplierapp/issue_confirm_delete.html"

    def get(self, request, issue_id):
        try:
            issue = issue_service().get(request.session_user, issue_id)
        except NotFoundError:
            raise Http404("Issue not found")
        return render(request, self.template_name, {"issue": issue})

    def post(self, request, issue_id):
        try:
            issue_service().delete(request.session_user, issue_id)
            messages.success(request, "Issue deleted successfully.")
        except StoreError as e:
            messages.error(request, f"Error deleting issue: {e}")
        return redirect("admin_issues")


# -------------------------------------------------------------------
# Profile & preferences
# -------------------------------------------------------------------

class ProfileView(View):
    def get(self, request):
        user = request.session_user
        contract_count = 0
        try:
            contract_count = len(contract_service().list_owned(user))
        except StoreError as e:
            messages.error(request, str(e))
        return render(request, "supplierapp/profile.html", {"profile": user, "contract_count": contract_count})


def _back(request):
    target = request.POST.get("next") or request.META.get("HTTP_REFERER")
    if target and url_has_allowed_host_and_scheme(target, allowed_hosts={request.get_host()}):
        return redirect(target)
    return redirect("dashboard")


class SetLanguageView(View):
    def post(self, request):
        request.session["language"] = normalize_language(request.POST.get("language"))
        return _back(request)


class ToggleThemeView(View):
    def post(self, request):
        request.session["theme"] = "light" if request.session.get("theme") == "dark" else "dark"
        return _back(request)


# -------------------------------------------------------------------
# Authentication
# -------------------------------------------------------------------

class CognitoUserAuth:
    """Shared Cognito service instance for auth views."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.cognito = CognitoService()


class SignupView(CognitoUserAuth, View):
    template_name = "supplierapp/signup.html"

    def get(self, request):
        return render(request, self.template_name)

    def post(self, request):
        email = request.POST.get("email", "").strip()
        password = request.POST.get("password", "").strip()
        confirm_password = request.POST.get("confirm_password", "").strip()

        if not email or not password:
            messages.error(request, "Email and password are required.")
            return render(request, self.template_name)

        if password != confirm_password:
            messages.error(request, "Passwords do not match.")
            return render(request, self.template_name)

        if self.cognito.user_exists(email):
            messages.error(request, "Account already exists. Please log in.")
            return redirect("login")

        signup_result = self.cognito.sign_up(email, password)
        if "error" in signup_result:
            messages.error(request, signup_result["error"])
            return render(request, self.template_name)

        # Confirm, verify the email and place the account in the supplier group
        confirm_result = self.cognito.auto_confirm_user(email)
        if "error" in confirm_result:
            messages.error(request, confirm_result["error"])
            return render(request, self.template_name)

        logger.info("New supplier account registered: %s", email)
        messages.success(request, "Account created successfully. Please log in.")
        return redirect("login")


class LoginView(CognitoUserAuth, View):
    template_name = "supplierapp/login.html"

    def get(self, request):
        if request.session_user is not None:
            return redirect("dashboard")
        return render(request, self.template_name)

    def post(self, request):
        email = request.POST.get("email", "").strip()
        password = request.POST.get("password", "").strip()

        if not email or not password:
            messages.error(request, "Email and password are required.")
            return render(request, self.template_name)

        if not self.cognito.user_exists(email):
            messages.error(request, "Account does not exist. Please sign up first.")
            return redirect("signup")

        login_result = self.cognito.login(email, password)
        if "error" in login_result:
            messages.error(request, login_result["error"])
            return render(request, self.template_name)

        profile = self.cognito.user_profile(email)
        if "error" in profile:
            messages.error(request, profile["error"])
            return render(request, self.template_name)

        store_session_context(request.session, login_result.get("tokens", {}), profile)
        logger.info("User %s signed in as %s", email, profile["role"])
        return redirect("dashboard")


class LogoutView(CognitoUserAuth, View):
    def get(self, request):
        return self.post(request)

    def post(self, request):
        access_token = request.session.get("access_token")

        if access_token:
            self.cognito.logout(access_token)

        request.session.flush()
        return redirect("login")

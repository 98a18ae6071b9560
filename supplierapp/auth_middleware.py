import logging

from django.shortcuts import redirect

from .models import Role, SessionContext
from .translations import normalize_language

logger = logging.getLogger(__name__)

# Reachable without signing in.
PUBLIC_PATHS = (
    "/login/",
    "/signup/",
    "/preferences/",
    "/static/",
)


def session_context_from(session):
    """Rebuild the signed-in user from the session, or ``None`` if nobody is signed in."""
    if "access_token" not in session or "user_id" not in session:
        return None
    try:
        role = Role(session.get("role", Role.SUPPLIER.value))
    except ValueError:
        role = Role.SUPPLIER
    return SessionContext(
        user_id=session["user_id"],
        email=session.get("user_email", ""),
        role=role,
        language=normalize_language(session.get("language")),
        theme="dark" if session.get("theme") == "dark" else "light",
        member_since=session.get("member_since", ""),
    )


def store_session_context(session, tokens, profile):
    session["access_token"] = tokens.get("AccessToken")
    session["id_token"] = tokens.get("IdToken")
    session["refresh_token"] = tokens.get("RefreshToken")
    session["user_id"] = profile["user_id"]
    session["user_email"] = profile["email"]
    session["role"] = profile["role"]
    session["member_since"] = profile.get("member_since", "")
    session.modified = True


class CognitoLoginRequiredMiddleware:
    """
    Attach the signed-in user to the request as ``request.session_user``.

    Every page outside ``PUBLIC_PATHS`` needs an access token in the session;
    without one the request is redirected to login.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.session_user = session_context_from(request.session)

        if request.session_user is None and not any(request.path.startswith(p) for p in PUBLIC_PATHS):
            logger.debug("No access token in session, redirecting %s to login", request.path)
            return redirect("login")

        return self.get_response(request)

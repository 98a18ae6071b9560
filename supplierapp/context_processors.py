from .navigation import links_for
from .translations import LANGUAGE_NAMES, labels_for, normalize_language, text_direction


def navigation(request):
    """Navigation links, labels, language and theme for ``base.html``."""
    session_user = getattr(request, "session_user", None)
    session = getattr(request, "session", {})
    language = normalize_language(session.get("language"))
    labels = labels_for(language)
    links = links_for(session_user.role) if session_user else []
    return {
        "session_user": session_user,
        "nav_links": [{"label": labels[link.key], "url_name": link.url_name} for link in links],
        "labels": labels,
        "language": language,
        "languages": LANGUAGE_NAMES,
        "text_direction": text_direction(language),
        "theme": "dark" if session.get("theme") == "dark" else "light",
    }

"""Session-based authentication helpers for server-rendered routes."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import RedirectResponse

from canteen.db import session as db_session
from canteen.services.identity_provider import IdentityClient
from canteen.services.session_service import SessionAdapter
from canteen.views import ViewNavigator, ViewState

SESSION_TOKEN_KEY = "access_token"
SESSION_VIEW_KEY = "view"
SESSION_NOTICE_KEY = "notice"


def build_adapter() -> SessionAdapter:
    """Fresh identity client and adapter bound to the current session factory."""
    session_factory = db_session.get_session_factory()
    return SessionAdapter(IdentityClient(session_factory), session_factory)


def restore_adapter(request: Request) -> SessionAdapter:
    """Build an adapter and restore the identity session stored in the cookie.

    A token the identity provider rejects is dropped from the cookie. Storage
    failures keep the token and leave a notice so the visitor can retry.
    """
    adapter = build_adapter()
    token = request.session.get(SESSION_TOKEN_KEY)
    if token and adapter.restore_session(token) is None:
        if adapter.session_error:
            request.session[SESSION_NOTICE_KEY] = adapter.session_error
        else:
            request.session.pop(SESSION_TOKEN_KEY, None)
    return adapter


def remember_session(request: Request, adapter: SessionAdapter) -> None:
    current = adapter.session
    if current is not None:
        request.session[SESSION_TOKEN_KEY] = current.access_token


def forget_session(request: Request) -> None:
    request.session.pop(SESSION_TOKEN_KEY, None)
    request.session[SESSION_VIEW_KEY] = ViewState.HOME.value


def navigator_for(request: Request, adapter: SessionAdapter) -> ViewNavigator:
    """Rebuild the visitor's navigator from the view stored in the cookie."""
    try:
        stored = ViewState(request.session.get(SESSION_VIEW_KEY, ViewState.HOME.value))
    except ValueError:
        stored = ViewState.HOME
    return ViewNavigator(adapter, stored)


def remember_view(request: Request, navigator: ViewNavigator) -> None:
    request.session[SESSION_VIEW_KEY] = navigator.state.value


def pop_notice(request: Request) -> str | None:
    return request.session.pop(SESSION_NOTICE_KEY, None)


def require_admin_page(request: Request, navigator: ViewNavigator) -> RedirectResponse | None:
    """Admin pages render only for a valid session and active admin."""
    if navigator.state is not ViewState.ADMIN:
        remember_view(request, navigator)
        return RedirectResponse(url="/", status_code=303)
    return None

"""FastAPI entrypoint for the Forester Canteen menu display and admin panel."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from urllib.parse import parse_qs

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from canteen.api.v1.api import api_router
from canteen.auth import (
    SESSION_NOTICE_KEY,
    build_adapter,
    forget_session,
    navigator_for,
    pop_notice,
    remember_session,
    remember_view,
    require_admin_page,
    restore_adapter,
)
from canteen.core.config import ConnectionConfig, load_connection_config, settings
from canteen.core.errors import MSG_NOT_CONFIGURED, MSG_UNPROVISIONED_ADMIN, ConfigurationError
from canteen.db import session as db_session
from canteen.db.base import Base
from canteen.db.seed import ensure_menu_seed
from canteen.services.availability_service import AvailabilityService
from canteen.services.realtime import realtime_hub
from canteen.state import MenuState
from canteen.views import ViewState

BASE_DIR = Path(__file__).resolve().parent
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.session_secret,
    same_site="lax",
    https_only=False,
    max_age=60 * 60 * 24 * 7,
)
app.include_router(api_router, prefix="/api/v1")
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))

SELECTION_ACTIONS = {"save", "select_all", "deselect_all"}


def inject_globals(request: Request) -> dict[str, object]:
    """Inject values every page needs, including the realtime socket parameters."""
    connection: ConnectionConfig | None = getattr(request.app.state, "connection", None)
    return {
        "app_name": settings.app_name,
        "anon_key": connection.anon_key if connection is not None else None,
    }


def render_template(request: Request, name: str, context: dict | None = None, status_code: int = 200):
    """Render a template with required request object and shared global context."""
    payload = {"request": request, **inject_globals(request)}
    if context:
        payload.update(context)
    return templates.TemplateResponse(request, name, payload, status_code=status_code)


@app.on_event("startup")
def startup() -> None:
    app.state.hub = realtime_hub
    app.state.config_error = None
    app.state.connection = None
    app.state.menu_state = None
    if not os.getenv("SESSION_SECRET"):
        logger.warning("SESSION_SECRET not set; using development fallback secret.")

    try:
        connection = load_connection_config(settings)
    except ConfigurationError as exc:
        logger.warning("[BOOTSTRAP] %s Starting in not-configured mode.", exc)
        app.state.config_error = str(exc)
        return

    app.state.connection = connection
    engine = db_session.engine or db_session.init_engine(connection.service_url)
    try:
        Base.metadata.create_all(bind=engine)
        with db_session.get_session_factory()() as session:
            ensure_menu_seed(session)
    except SQLAlchemyError:
        logger.exception("[BOOTSTRAP] Schema/seed bootstrap failed; continuing startup.")

    menu_state = MenuState(
        db_session.get_session_factory(),
        realtime_hub,
        updates_limit=settings.recent_updates_limit,
    )
    menu_state.start()
    app.state.menu_state = menu_state


@app.on_event("shutdown")
def shutdown() -> None:
    menu_state: MenuState | None = getattr(app.state, "menu_state", None)
    if menu_state is not None:
        menu_state.stop()
        app.state.menu_state = None
    db_session.dispose_engine()


async def _form_data(request: Request) -> dict[str, list[str]]:
    body = (await request.body()).decode()
    return parse_qs(body, keep_blank_values=True)


def _form_value(form: dict[str, list[str]], key: str) -> str:
    values = form.get(key) or [""]
    return values[-1]


def _not_configured_page(request: Request):
    if request.app.state.config_error is None:
        return None
    return render_template(
        request,
        "not_configured.html",
        {"message": MSG_NOT_CONFIGURED, "detail": request.app.state.config_error},
        status_code=503,
    )


def _read_error_page(request: Request, error: str, retry_url: str):
    return render_template(request, "error.html", {"error": error, "retry_url": retry_url}, status_code=503)


@app.get("/", response_class=HTMLResponse)
def home(request: Request, retry: bool = False):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    if navigator.state is ViewState.LOGIN:
        navigator.back()
    remember_view(request, navigator)

    menu_state: MenuState = request.app.state.menu_state
    if retry or menu_state.items_error:
        menu_state.refresh_items()
    if menu_state.items_error:
        return _read_error_page(request, menu_state.items_error, "/?retry=1")

    grouped = menu_state.grouped_items(available_only=True)
    return render_template(
        request,
        "home.html",
        {
            "grouped_items": grouped,
            "last_updated": menu_state.last_updated,
            "is_admin": navigator.state is ViewState.ADMIN,
            "notice": pop_notice(request),
        },
    )


@app.get("/login", response_class=HTMLResponse)
def login_page(request: Request, error: str | None = None):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    if navigator.state is ViewState.ADMIN:
        return RedirectResponse(url="/admin", status_code=303)
    if navigator.state is ViewState.HOME:
        navigator.request_admin_access()
    remember_view(request, navigator)

    signed_in_email = adapter.session.email if adapter.session is not None else None
    if error is None and signed_in_email:
        error = adapter.lookup.error or (MSG_UNPROVISIONED_ADMIN if adapter.lookup.unprovisioned else None)
    return render_template(
        request,
        "login.html",
        {"error": error, "signed_in_email": signed_in_email, "notice": pop_notice(request)},
    )


@app.post("/login")
async def login_submit(request: Request):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    form = await _form_data(request)
    mode = _form_value(form, "mode") or "signin"
    email = _form_value(form, "email").strip()
    password = _form_value(form, "password")

    adapter = build_adapter()
    navigator = navigator_for(request, adapter)
    if navigator.state is ViewState.HOME:
        navigator.request_admin_access()

    if mode == "signup":
        result = adapter.sign_up(email, password, _form_value(form, "name"))
    else:
        result = adapter.sign_in(email, password)

    state = navigator.complete_login(result)
    remember_session(request, adapter)
    remember_view(request, navigator)
    if state is ViewState.ADMIN:
        logger.info("[AUTH] Admin %s entered the admin panel", adapter.admin.email)
        return RedirectResponse(url="/admin", status_code=303)

    signed_in_email = adapter.session.email if adapter.session is not None else None
    return render_template(
        request,
        "login.html",
        {"error": navigator.error, "signed_in_email": signed_in_email, "mode": mode, "email": email},
        status_code=400 if not result.success else 200,
    )


@app.get("/admin", response_class=HTMLResponse)
def admin_page(request: Request, retry: bool = False):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    redirect = require_admin_page(request, navigator)
    if redirect is not None:
        return redirect

    menu_state: MenuState = request.app.state.menu_state
    if retry:
        menu_state.refresh_items()
        menu_state.refresh_updates()
    if menu_state.items_error:
        return _read_error_page(request, menu_state.items_error, "/admin?retry=1")

    grouped = menu_state.grouped_items()
    counts = {
        category: (sum(1 for item in items if item.is_available), len(items))
        for category, items in grouped.items()
    }
    return render_template(
        request,
        "admin.html",
        {
            "admin": adapter.admin,
            "grouped_items": grouped,
            "counts": counts,
            "recent_updates": menu_state.recent_updates,
            "updates_error": menu_state.updates_error,
            "last_updated": menu_state.last_updated,
            "notice": pop_notice(request),
        },
    )


@app.post("/admin/items/{item_id}/availability")
async def admin_toggle_item(request: Request, item_id: int):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    form = await _form_data(request)
    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    redirect = require_admin_page(request, navigator)
    if redirect is not None:
        return redirect

    is_available = _form_value(form, "is_available").lower() in {"1", "true", "on", "yes"}
    service = AvailabilityService(db_session.get_session_factory(), adapter.identity)
    result = service.set_availability(item_id, is_available, adapter.admin.name)
    if not result.success:
        request.session[SESSION_NOTICE_KEY] = result.error
    return RedirectResponse(url="/admin", status_code=303)


@app.post("/admin/selection")
async def admin_save_selection(request: Request):
    blocked = _not_configured_page(request)
    if blocked is not None:
        return blocked

    form = await _form_data(request)
    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    redirect = require_admin_page(request, navigator)
    if redirect is not None:
        return redirect

    action = _form_value(form, "action") or "save"
    if action not in SELECTION_ACTIONS:
        request.session[SESSION_NOTICE_KEY] = f"Unknown action: {action}"
        return RedirectResponse(url="/admin", status_code=303)

    menu_state: MenuState = request.app.state.menu_state
    service = AvailabilityService(db_session.get_session_factory(), adapter.identity)
    if action == "save":
        selected: list[int] = []
        for raw in form.get("item_id", []):
            try:
                selected.append(int(raw))
            except ValueError:
                continue
        result = service.apply_selection(selected, adapter.admin.name)
    else:
        wanted = action == "select_all"
        affected = [item.id for item in menu_state.items if item.is_available != wanted]
        result = service.set_availability_bulk(affected, wanted, adapter.admin.name)

    if result.error:
        request.session[SESSION_NOTICE_KEY] = result.error
    elif result.failed_ids:
        request.session[SESSION_NOTICE_KEY] = f"Some items could not be updated: {', '.join(map(str, result.failed_ids))}"
    return RedirectResponse(url="/admin", status_code=303)


@app.post("/logout")
def logout(request: Request):
    if request.app.state.config_error is not None:
        return RedirectResponse(url="/", status_code=303)

    adapter = restore_adapter(request)
    navigator = navigator_for(request, adapter)
    if navigator.state is ViewState.ADMIN:
        result = navigator.logout()
    else:
        result = adapter.sign_out()
    if not result.success:
        request.session[SESSION_NOTICE_KEY] = result.error
    forget_session(request)
    return RedirectResponse(url="/", status_code=303)

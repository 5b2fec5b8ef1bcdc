"""Páginas HTML: listado de eventos, reserva y autenticación"""
from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote
import logging

from shared.config import settings
from shared.database.connection import get_db
from shared.auth.dependencies import SESSION_COOKIE, get_optional_user
from shared.auth.supabase_client import AuthError, SupabaseAuthClient, get_auth_client
from services.auth.services.auth_service import AuthService
from services.bookings.services.booking_service import BookingService
from services.event_management.models.event import EventPage
from services.event_management.services.event_service import EventService
from services.profiles.services.profile_service import ProfileService

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

router = APIRouter(include_in_schema=False)

# Avisos que se pueden mostrar vía ?notice=
NOTICES = {
    "signed_in": "Successfully signed in!",
    "signed_up": "Account created! Please check your email to verify your account.",
    "signed_out": "Signed out.",
    "event_not_found": "Event not found",
}

LOAD_EVENTS_FAILED = "Failed to load events"
BOOKING_FAILED = "Failed to submit booking"


def _safe_next(next_url: Optional[str]) -> str:
    # Solo rutas locales
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return "/"


def _set_session_cookie(response: RedirectResponse, access_token: str, expires_in: Optional[int]) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        access_token,
        max_age=expires_in or settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.APP_ENV != "development",
    )


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    page: int = Query(1, ge=1),
    q: Optional[str] = Query(None),
    notice: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    user: Optional[Dict] = Depends(get_optional_user)
):
    """Listado de eventos con carrusel, búsqueda y paginación"""
    message = NOTICES.get(notice)
    try:
        events_page = await EventService.get_events_page(db, page=page, search=q)
    except Exception:
        logger.exception("Error cargando eventos")
        message = LOAD_EVENTS_FAILED
        events_page = EventPage(page=page, page_size=settings.EVENTS_PAGE_SIZE, total_count=0, total_pages=0, search=q)

    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "user": user,
            "events_page": events_page,
            "pages": list(range(1, events_page.total_pages + 1)),
            "search": q or "",
            "notice": message,
        },
    )


@router.get("/events/{event_id}/book", response_class=HTMLResponse)
async def booking_form(
    request: Request,
    event_id: str,
    db: AsyncSession = Depends(get_db),
    user: Optional[Dict] = Depends(get_optional_user)
):
    """Formulario de reserva; sin sesión se redirige al inicio de sesión"""
    if user is None:
        return RedirectResponse(
            f"/auth/sign-in?next={quote(f'/events/{event_id}/book')}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    event = await EventService.get_event_response(db, event_id)
    if event is None:
        return RedirectResponse("/?notice=event_not_found", status_code=status.HTTP_303_SEE_OTHER)

    return templates.TemplateResponse(
        request,
        "book.html",
        {"user": user, "event": event, "preferences": "", "notice": None},
    )


@router.post("/events/{event_id}/book", response_class=HTMLResponse)
async def submit_booking(
    request: Request,
    event_id: str,
    preferences: str = Form(""),
    db: AsyncSession = Depends(get_db),
    user: Optional[Dict] = Depends(get_optional_user)
):
    """
    Enviar reserva

    Cualquier error muestra el mismo aviso genérico y deja el formulario como estaba.
    """
    if user is None:
        return RedirectResponse(
            f"/auth/sign-in?next={quote(f'/events/{event_id}/book')}",
            status_code=status.HTTP_303_SEE_OTHER,
        )

    event = await EventService.get_event_response(db, event_id)
    if event is None:
        return RedirectResponse("/?notice=event_not_found", status_code=status.HTTP_303_SEE_OTHER)

    try:
        profile = await ProfileService().ensure_profile(db, user["user_id"], user.get("user_metadata"))
        booking = await BookingService().create_booking(
            db,
            event_id=event_id,
            actor_id=profile.id,
            preferences=preferences or None,
        )
    except Exception:
        logger.exception(f"Error enviando reserva para evento {event_id}")
        await db.rollback()
        booking = None

    if booking is None:
        return templates.TemplateResponse(
            request,
            "book.html",
            {"user": user, "event": event, "preferences": preferences, "notice": BOOKING_FAILED},
        )

    return templates.TemplateResponse(
        request,
        "booking_success.html",
        {"user": user, "event": event, "booking": booking, "notice": None},
    )


@router.get("/auth/sign-in", response_class=HTMLResponse)
async def sign_in_form(request: Request, next: Optional[str] = Query(None)):
    return templates.TemplateResponse(
        request,
        "sign_in.html",
        {"user": None, "next": _safe_next(next), "email": "", "notice": None},
    )


@router.post("/auth/sign-in", response_class=HTMLResponse)
async def sign_in(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    next: str = Form("/"),
    db: AsyncSession = Depends(get_db),
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    try:
        session = await AuthService(client).sign_in(db, email, password)
    except AuthError as e:
        return templates.TemplateResponse(
            request,
            "sign_in.html",
            {"user": None, "next": _safe_next(next), "email": email, "notice": e.message},
        )

    target = _safe_next(next)
    separator = "&" if "?" in target else "?"
    response = RedirectResponse(f"{target}{separator}notice=signed_in", status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, session.access_token, session.expires_in)
    return response


@router.get("/auth/sign-up", response_class=HTMLResponse)
async def sign_up_form(request: Request):
    return templates.TemplateResponse(
        request,
        "sign_up.html",
        {"user": None, "email": "", "full_name": "", "notice": None},
    )


@router.post("/auth/sign-up", response_class=HTMLResponse)
async def sign_up(
    request: Request,
    full_name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    try:
        result = await AuthService(client).sign_up(db, email, password, full_name)
    except AuthError as e:
        return templates.TemplateResponse(
            request,
            "sign_up.html",
            {"user": None, "email": email, "full_name": full_name, "notice": e.message},
        )

    response = RedirectResponse("/?notice=signed_up", status_code=status.HTTP_303_SEE_OTHER)
    session = result["session"]
    if session is not None:
        _set_session_cookie(response, session.access_token, session.expires_in)
    return response


@router.post("/auth/sign-out")
async def sign_out(
    request: Request,
    client: SupabaseAuthClient = Depends(get_auth_client)
):
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        try:
            await AuthService(client).sign_out(token)
        except AuthError as e:
            # La cookie se elimina igual
            logger.warning(f"No se pudo revocar la sesión: {e.message}")

    response = RedirectResponse("/?notice=signed_out", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE)
    return response

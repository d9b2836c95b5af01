"""
Protection par mot de passe (APP_PASSWORD)

Sans cookie de session, toute page redirige vers /password.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import Settings, get_settings
from .schemas import AuthRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

SESSION_COOKIE = "auth-session"
SESSION_VALUE = "authenticated"
SESSION_MAX_AGE = 60 * 60 * 24 * 7  # 7 jours

PUBLIC_PATHS = {"/api/auth", "/password", "/health", "/favicon.ico"}
PUBLIC_PREFIXES = ("/static/",)


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


class PasswordGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        # Pas de mot de passe configuré : pas de protection
        if not self.settings.app_password:
            return await call_next(request)

        if request.cookies.get(SESSION_COOKIE) == SESSION_VALUE:
            return await call_next(request)

        if is_public_path(request.url.path):
            return await call_next(request)

        return RedirectResponse(url="/password", status_code=307)


@router.post("/api/auth")
async def login(request: Request, settings: Settings = Depends(get_settings)):
    if not settings.app_password:
        return JSONResponse({"success": False, "error": "Server configuration error"}, status_code=500)

    try:
        password = AuthRequest.model_validate(await request.json()).password
    except Exception as e:
        logger.warning("Malformed auth request: %s", e)
        return JSONResponse({"success": False, "error": "Authentication failed"}, status_code=500)

    if password != settings.app_password:
        return JSONResponse({"success": False, "error": "Invalid password"}, status_code=401)

    response = JSONResponse({"success": True})
    response.set_cookie(
        SESSION_COOKIE,
        SESSION_VALUE,
        max_age=SESSION_MAX_AGE,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response

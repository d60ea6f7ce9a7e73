import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from triptrack import components
from triptrack.auth import LOGIN_URL, LoginRequired, router as auth_router
from triptrack.config import Settings
from triptrack.db import build_engine, init_db
from triptrack.errors import NotFound, PermissionDenied
from triptrack.routes.admin import router as admin_router
from triptrack.routes.dashboard import router as dashboard_router
from triptrack.routes.trips import router as trips_router
from triptrack.services.storage import STORAGE_ROUTE, ObjectStorage
from triptrack.web import flash, redirect

PACKAGE_DIR = os.path.dirname(__file__)

logger = logging.getLogger("triptrack")


def _configure_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=os.path.join(PACKAGE_DIR, "templates"))
    env = templates.env
    env.globals.update(
        countdown=components.countdown,
        progress_percent=components.progress_percent,
        bar_width=components.bar_width,
        progress_tier=components.progress_tier,
        has_reached_goal=components.has_reached_goal,
        trip_summary=components.trip_summary,
        initials=components.initials,
        avatar_color=components.avatar_color,
        countdown_refresh_ms=components.COUNTDOWN_REFRESH_MS,
    )
    env.filters["money"] = components.money
    env.filters["percent"] = components.percent
    return templates


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(app.state.engine)
    yield


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s",
    )

    app = FastAPI(title="TripTrack", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = build_engine(settings)
    app.state.storage = ObjectStorage.from_settings(settings)

    # templates & static
    app.templates = _configure_templates()
    app.mount("/static", StaticFiles(directory=os.path.join(PACKAGE_DIR, "static")), name="static")
    os.makedirs(os.path.join(settings.storage_dir, settings.photo_bucket), exist_ok=True)
    app.mount(
        f"{STORAGE_ROUTE}/{settings.photo_bucket}",
        StaticFiles(directory=os.path.join(settings.storage_dir, settings.photo_bucket)),
        name="storage",
    )

    # Session middleware
    app.add_middleware(SessionMiddleware, secret_key=settings.secret_key)

    if settings.google_enabled:
        from authlib.integrations.starlette_client import OAuth

        oauth = OAuth()
        oauth.register(
            name="google",
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
            client_kwargs={"scope": "openid email profile"},
        )
        app.state.oauth = oauth

    # include routers
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    app.include_router(admin_router)
    app.include_router(trips_router)

    @app.exception_handler(LoginRequired)
    async def login_required(request: Request, exc: LoginRequired):
        return redirect(LOGIN_URL)

    @app.exception_handler(NotFound)
    @app.exception_handler(PermissionDenied)
    async def not_available(request: Request, exc: Exception):
        logger.info("%s %s: %s", request.method, request.url.path, exc)
        flash(request, "Permission denied" if isinstance(exc, PermissionDenied) else str(exc))
        return redirect("/dashboard")

    return app


app = create_app()

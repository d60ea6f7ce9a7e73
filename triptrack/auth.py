import logging
from typing import Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from sqlmodel import Session

from triptrack.db import get_session
from triptrack.errors import FormError
from triptrack.models import User
from triptrack.services import auth_service
from triptrack.web import redirect, render

router = APIRouter(prefix="/auth")
logger = logging.getLogger("triptrack.auth")

LOGIN_URL = "/auth/login"
SESSION_KEY = "account_id"


class LoginRequired(Exception):
    """Raised by guards; turned into a redirect to the login page."""


def current_profile(request: Request, session: Session = Depends(get_session)) -> Optional[User]:
    account_id = request.session.get(SESSION_KEY)
    if not account_id:
        return None
    return auth_service.get_profile(session, account_id)


def require_profile(request: Request, session: Session = Depends(get_session)) -> User:
    account_id = request.session.get(SESSION_KEY)
    if not account_id:
        raise LoginRequired()
    profile = auth_service.get_profile(session, account_id)
    if not profile:
        logger.warning("Session for account %s has no profile", account_id)
        request.session.pop(SESSION_KEY, None)
        raise LoginRequired()
    return profile


def _start_session(request: Request, account_id: int):
    request.session.clear()
    request.session[SESSION_KEY] = account_id


@router.get("/login")
def login_page(request: Request):
    return render(request, "login.html", google_enabled=request.app.state.settings.google_enabled)


@router.post("/login")
def login(request: Request, email: str = Form(...), password: str = Form(...),
          session: Session = Depends(get_session)):
    try:
        account = auth_service.sign_in(session, email, password)
        auth_service.provision_profile(session, account)
    except FormError as e:
        return render(request, "login.html", status_code=400, error=str(e), email=email,
                      google_enabled=request.app.state.settings.google_enabled)
    _start_session(request, account.id)
    return redirect("/dashboard")


@router.get("/signup")
def signup_page(request: Request):
    return render(request, "signup.html")


@router.post("/signup")
def signup(request: Request, email: str = Form(...), password: str = Form(...), name: str = Form(""),
           session: Session = Depends(get_session)):
    try:
        try:
            account = auth_service.sign_up(session, email, password)
        except FormError as e:
            if "already exists" not in str(e):
                raise
            # existing account: treat as sign-in with the supplied password
            account = auth_service.sign_in(session, email, password)
        auth_service.provision_profile(session, account, name=name)
    except FormError as e:
        return render(request, "signup.html", status_code=400, error=str(e), email=email, name=name)
    _start_session(request, account.id)
    return redirect("/dashboard")


@router.get("/logout")
@router.post("/logout")
def logout(request: Request):
    request.session.pop(SESSION_KEY, None)
    return redirect(LOGIN_URL)


@router.get("/google")
async def google_login(request: Request):
    oauth = getattr(request.app.state, "oauth", None)
    if oauth is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    redirect_uri = request.url_for("auth_callback")
    return await oauth.google.authorize_redirect(request, str(redirect_uri))


@router.get("/google/callback", name="auth_callback")
async def google_callback(request: Request, session: Session = Depends(get_session)):
    oauth = getattr(request.app.state, "oauth", None)
    if oauth is None:
        raise HTTPException(status_code=404, detail="Google sign-in is not configured")
    try:
        token = await oauth.google.authorize_access_token(request)
    except Exception as e:
        logger.exception("authorize_access_token() failed: %s", e)
        raise HTTPException(status_code=500, detail="OAuth token exchange failed; check server logs")

    userinfo = token.get("userinfo") if isinstance(token, dict) else None
    if not userinfo:
        resp = await oauth.google.get("userinfo", token=token)
        userinfo = resp.json()
    if not userinfo or not isinstance(userinfo, dict):
        raise HTTPException(status_code=500, detail="Authentication failed: invalid userinfo")

    google_id = userinfo.get("sub") or userinfo.get("id")
    email = userinfo.get("email")
    try:
        account = auth_service.link_google_account(session, google_id, email)
        auth_service.provision_profile(session, account, name=userinfo.get("name"))
    except FormError as e:
        return render(request, "login.html", status_code=400, error=str(e), google_enabled=True)
    _start_session(request, account.id)
    return redirect("/dashboard")

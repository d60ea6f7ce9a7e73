from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from triptrack.auth import require_profile
from triptrack.db import get_session
from triptrack.models import User
from triptrack.services import trip_service
from triptrack.web import redirect, render

router = APIRouter()


@router.get("/")
def index():
    return redirect("/dashboard")


@router.get("/dashboard")
def dashboard(request: Request, current_user: User = Depends(require_profile),
              session: Session = Depends(get_session)):
    trips = trip_service.list_trips(session, current_user)
    return render(request, "dashboard.html", trips=trips, current_user=current_user,
                  is_admin=current_user.is_admin)


@router.get("/healthz")
def healthz():
    return {"ok": True}

import logging
from typing import List

from fastapi import Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError

from triptrack.errors import FormError, TripTrackError, describe_error

logger = logging.getLogger("triptrack.web")

ACTION_ERRORS = (TripTrackError, SQLAlchemyError)


def flash(request: Request, message: str, category: str = "error"):
    request.session.setdefault("flashes", []).append({"category": category, "message": message})


def pop_flashes(request: Request) -> List[dict]:
    return request.session.pop("flashes", [])


def render(request: Request, template: str, status_code: int = 200, **context):
    context.setdefault("current_user", None)
    context["flashes"] = pop_flashes(request)
    return request.app.templates.TemplateResponse(request, template, context, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


def fail(request: Request, exc: Exception, url: str, action: str) -> RedirectResponse:
    """Flash an alert for a failed action and send the browser back."""
    if isinstance(exc, FormError):
        logger.info("%s rejected: %s", action, exc)
        flash(request, str(exc))
    else:
        logger.exception("Error during %s", action)
        flash(request, f"Failed to {action}: {describe_error(exc)}")
    return redirect(url)

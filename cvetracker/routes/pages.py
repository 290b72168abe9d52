import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import FileResponse, RedirectResponse

from cvetracker.errors import CveTrackerError
from cvetracker.services.registry import RegistrationResult, UserRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


def get_registry(request: Request) -> UserRegistry:
    return request.app.state.registry


def _page(request: Request, filename: str) -> FileResponse:
    return FileResponse(request.app.state.settings.public_dir / filename, media_type="text/html")


@router.get("/", include_in_schema=False)
def auth_page(request: Request):
    """Entry point: the registration form."""
    return _page(request, "auth.html")


@router.get("/cve.html", include_in_schema=False)
def cve_page(request: Request):
    return _page(request, "cve.html")


@router.post("/register")
def register(
    username: str = Form(None),
    password: str = Form(None),
    email: str = Form(None),
    registry: UserRegistry = Depends(get_registry),
):
    """Register an account, then send the browser on to the main page.

    Duplicates are redirected back to the form with ``?error=UserExists`` so
    the page can show an inline message.
    """
    if not username or not password or not email:
        raise HTTPException(status_code=400, detail="All fields are required.")

    # NOTE: passwords are stored as submitted; hashing is left to a real auth layer.
    try:
        result = registry.register(username, password, email)
    except CveTrackerError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    if result is RegistrationResult.ALREADY_EXISTS:
        logger.info("registration rejected, username or email taken: %s", username)
        return RedirectResponse("/?error=UserExists", status_code=303)
    return RedirectResponse("/cve.html", status_code=303)

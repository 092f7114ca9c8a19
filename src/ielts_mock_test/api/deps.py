"""Request dependencies: service container, caller identity, error rendering."""

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from ielts_mock_test.container import ServiceContainer
from ielts_mock_test.errors import MockTestError, UnauthorizedError
from ielts_mock_test.models.user import User

SESSION_COOKIE = "session"


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def _session_token(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.removeprefix("Bearer ").strip()
    return None


async def get_current_user(
    request: Request, services: ServiceContainer = Depends(get_services)
) -> User:
    """Resolve the caller from the session cookie or a bearer token."""
    token = _session_token(request)
    user = services.users.get_by_token(token) if token else None
    if user is None:
        raise UnauthorizedError()
    return user


async def _mock_test_error_handler(request: Request, exc: MockTestError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MockTestError, _mock_test_error_handler)

from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from .config import Settings, get_settings
from .api.routers import health as health_router
from .api.routers import otp as otp_router
from .api.routers import registrations as registrations_router
from .domain.errors import ErrorKind, RegistrationError
from .middleware.request_context import RequestContextMiddleware
from .observability.logging import setup_logging
from .services.otp import Notifier, OtpManager, OtpPolicy
from .services.otp_sender import EmailOtpSender
from .services.sheets import SheetsSubmissionStore
from .services.submissions import SubmissionRecorder, SubmissionStore


def _error_body(kind: ErrorKind, detail: str) -> dict:
    return {"ok": False, "error": kind.value, "detail": detail}


async def registration_error_handler(_: Request, exc: RegistrationError) -> JSONResponse:
    headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.kind, exc.detail), headers=headers)


async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body(ErrorKind.INVALID_INPUT, "malformed request body"))


def create_app(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[Notifier] = None,
    store: Optional[SubmissionStore] = None,
    clock: Optional[Callable[[], float]] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

    # an empty CORS_ORIGINS reflects whatever origin calls, credentials included
    origins = settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=None if origins else ".*",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware, header=settings.REQUEST_ID_HEADER)

    notifier = notifier or EmailOtpSender(settings)
    store = store or SheetsSubmissionStore(settings)
    manager_kwargs = {"clock": clock} if clock else {}
    app.state.settings = settings
    app.state.notifier = notifier
    app.state.store = store
    app.state.otp_manager = OtpManager(OtpPolicy.from_settings(settings), notifier, **manager_kwargs)
    app.state.recorder = SubmissionRecorder(store)

    app.add_exception_handler(RegistrationError, registration_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(health_router.router)
    app.include_router(otp_router.router)
    app.include_router(registrations_router.router)

    return app


def run() -> None:
    settings = get_settings()
    setup_logging(settings)
    uvicorn.run("formreg.main:create_app", factory=True, host=settings.APP_HOST, port=settings.APP_PORT)


if __name__ == "__main__":
    run()

"""API assembly helpers."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core import AppError
from .routers import ALL_ROUTERS


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse({"message": exc.message}, status_code=exc.status_code)


def register_routes(app: FastAPI) -> None:
    """Attach all application routers and the domain error handler."""

    app.add_exception_handler(AppError, app_error_handler)
    for router in ALL_ROUTERS:
        app.include_router(router)


__all__ = ["app_error_handler", "register_routes"]

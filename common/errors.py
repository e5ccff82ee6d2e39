"""Translate scheduling errors into HTTP responses."""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from reservations.errors import InvalidViewMode, RepositoryUnavailable


def invalid_view_mode_handler(_: Request, exc: InvalidViewMode) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def repository_unavailable_handler(_: Request, exc: RepositoryUnavailable) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidViewMode, invalid_view_mode_handler)
    app.add_exception_handler(RepositoryUnavailable, repository_unavailable_handler)

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dealhub.domain.errors import DomainValidationError, InvalidTransitionError, TokenConflictError

logger = logging.getLogger(__name__)


async def domain_validation_handler(request: Request, exc: DomainValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "errors": exc.errors.as_dict()},
    )


async def conflict_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.warning("Conflict on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainValidationError, domain_validation_handler)
    app.add_exception_handler(TokenConflictError, conflict_handler)
    app.add_exception_handler(InvalidTransitionError, conflict_handler)

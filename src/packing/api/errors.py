"""HTTP mapping for engine failures.

Protean's own handlers cover ValidationError, ObjectNotFoundError and
friends; this adds the typed ``PackingError`` family.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from packing.errors import PackingError
from packing.utils.logging import get_logger

logger = get_logger(__name__)


async def packing_error_handler(request: Request, exc: PackingError) -> JSONResponse:
    logger.info(
        "request_rejected",
        path=request.url.path,
        kind=exc.kind,
        status_code=exc.status_code,
        **exc.context,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def register_packing_exception_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(PackingError, packing_error_handler)

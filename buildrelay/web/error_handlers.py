import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from buildrelay.features.build_dispatch.data.jenkins_client import JenkinsAPIError
from buildrelay.features.build_dispatch.domain.errors import (
    DispatchCancelled, DispatchError, DispatchStateError, ResolutionTimeout, SubmissionRejected
)
from buildrelay.features.instance_inventory.domain.errors import (
    InventoryError, ProfileNotFoundError, RegionNotConfiguredError
)

logger = logging.getLogger("buildrelay.errors")

def register_error_handlers(app: FastAPI):
    @app.exception_handler(HTTPException)
    async def http_exc_handler(request: Request, exc: HTTPException):
        logger.warning(
            "HTTPException path=%s status=%s detail=%r",
            request.url.path, exc.status_code, exc.detail
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail) if exc.detail else "HTTP error"},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        logger.warning(
            "ValidationError path=%s errors=%s",
            request.url.path, exc.errors()
        )
        return JSONResponse(
            status_code=422,
            content={"error": "Validation error", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(DispatchError)
    async def dispatch_exc_handler(request: Request, exc: DispatchError):
        status_code = 502
        if isinstance(exc, ResolutionTimeout):
            status_code = 504
        elif isinstance(exc, (DispatchStateError, DispatchCancelled)):
            status_code = 409

        content = {"error": exc.message, "kind": exc.kind}
        if isinstance(exc, SubmissionRejected):
            content["remote_status"] = exc.status_code

        logger.warning("DispatchError path=%s kind=%s message=%s", request.url.path, exc.kind, exc.message)
        return JSONResponse(status_code=status_code, content=content)

    @app.exception_handler(JenkinsAPIError)
    async def jenkins_exc_handler(request: Request, exc: JenkinsAPIError):
        logger.warning("JenkinsAPIError path=%s status=%s error=%s", request.url.path, exc.status_code, exc)
        return JSONResponse(status_code=502, content={"error": str(exc)})

    @app.exception_handler(InventoryError)
    async def inventory_exc_handler(request: Request, exc: InventoryError):
        if isinstance(exc, RegionNotConfiguredError):
            status_code = 400
        elif isinstance(exc, ProfileNotFoundError):
            status_code = 404
        else:
            status_code = 500
            logger.error("AWS DescribeInstances error: %s", exc)
        return JSONResponse(status_code=status_code, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unhandled_exc_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error at path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )

def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold raw exception objects, which JSONResponse cannot encode
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]

"""FastAPI application for the fee controller.

Note: the X-Caller header is taken at face value. Authenticating callers
belongs to the layer in front of this service (gateway / reverse proxy).
"""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from controller.api.endpoints import router
from controller.config import Settings
from controller.errors import ExternalCallFailed, InvalidConfiguration, Unauthorized

settings = Settings.from_env()

# Maximum request body size (1 MB)
MAX_REQUEST_SIZE = 1024 * 1024

app = FastAPI(
    title="Fee Controller",
    description="Owner/operator administration of a UniswapV3-style factory and its pools",
    version="0.1.0",
)


@app.middleware("http")
async def limit_request_size(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Reject requests with body larger than MAX_REQUEST_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length and int(content_length) > MAX_REQUEST_SIZE:
        return JSONResponse(status_code=413, content={"detail": "Request too large"})
    return await call_next(request)


@app.exception_handler(Unauthorized)
async def unauthorized_handler(_request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(InvalidConfiguration)
async def invalid_configuration_handler(
    _request: Request, exc: InvalidConfiguration
) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(ExternalCallFailed)
async def external_call_failed_handler(_request: Request, exc: ExternalCallFailed) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


app.include_router(router)


@app.get("/health")
async def health() -> dict[str, object]:
    """Health check endpoint."""
    return {"status": "ok", "backend": "rpc" if settings.rpc_url else "memory"}


def run() -> None:
    """Run the controller API server.

    Configuration via environment variables (see controller.config.Settings):
    - CONTROLLER_HOST: Host to bind to (default: 0.0.0.0)
    - CONTROLLER_PORT: Port to bind to (default: 8000)
    - CONTROLLER_DEBUG: Enable debug/reload mode (default: false)
    """
    uvicorn.run(
        "controller.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()

"""Main module for the finance hub function server."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from finance_hub.backend.core import BackendError, BackendErrorMapper
from finance_hub.container import Container, init_container
from finance_hub.routers import functions_router
from finance_hub.routers.functions import CORS_HEADERS

logger = logging.getLogger(__name__)

_error_mapper = BackendErrorMapper(resource_name="Resource", api_name="Supabase")


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    """Resolve server-side gateways at startup; close them on shutdown."""
    container: Container = fastapi_app.state.container
    fastapi_app.state.gateways_to_close = [
        container.admin_auth_gateway(),
        container.service_data_gateway(),
        container.function_data_gateway(),
    ]

    yield

    for gateway in fastapi_app.state.gateways_to_close:
        try:
            await gateway.close()
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Error closing gateway %s: %s", type(gateway).__name__, exc)


async def backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    status_code, message = _error_mapper.to_http(exc)
    logger.warning("%s %s -> %s: %s", request.method, request.url.path, status_code, message)
    return JSONResponse(
        {"error": type(exc).__name__, "message": message},
        status_code=status_code,
        headers=CORS_HEADERS,
    )


def create_app(container: Container | None = None) -> FastAPI:
    """Build the FastAPI app around a container (a fresh one from the environment by default)."""
    fastapi_app = FastAPI(
        title="Finance Hub Functions",
        description="Serverless handlers for the finance hub: admin bootstrap and security audit",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.container = container or init_container()
    fastapi_app.add_exception_handler(BackendError, backend_error_handler)
    fastapi_app.include_router(functions_router)

    @fastapi_app.get("/")
    def health():
        """Return health check status."""
        return {"status": "ok"}

    return fastapi_app


app = create_app()


def run():
    """Run the server (uvicorn). Use for the `finance-hub` script."""
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("finance_hub.main:app", host="127.0.0.1", port=8001)

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from fpkgi_server.api.browse import router as browse_router
from fpkgi_server.core.config import LOG_LEVEL_ENV_VAR, ServerConfig, load_config
from fpkgi_server.core.dependencies import initialize_routing
from fpkgi_server.domain.errors import RouteTableConsistencyError

# Configure logging
logging.basicConfig(
    level=os.environ.get(LOG_LEVEL_ENV_VAR, "info").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(config: Optional[ServerConfig] = None) -> FastAPI:
    """
    Build the application.

    The directory roots are scanned in the lifespan, once, before the first
    request. Without an explicit ``config`` it is loaded from the
    environment at that point, not at import time.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        server_config = config if config is not None else load_config()
        # A failed scan raises here and the server never starts accepting requests.
        initialize_routing(server_config)
        yield

    app = FastAPI(
        title="FPKGi directory server",
        version="0.1.0",
        description="Browsable, downloadable directory roots served over HTTP.",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    @app.exception_handler(RouteTableConsistencyError)
    async def route_table_fault(request: Request, exc: RouteTableConsistencyError) -> PlainTextResponse:
        logger.critical(f"Route table consistency fault while serving {request.url.path}: {exc}")
        return PlainTextResponse("Internal Server Error", status_code=500)

    app.include_router(browse_router)
    return app


app = create_app()


if __name__ == "__main__":
    """
    Allow running `python -m fpkgi_server.main` to start the Uvicorn server
    with the host and port from the environment configuration.
    """
    import uvicorn

    server_config = load_config()
    uvicorn.run(
        "fpkgi_server.main:app",
        host=server_config.host,
        port=server_config.port,
        log_level=server_config.log_level,
    )

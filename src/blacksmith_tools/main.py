# src/blacksmith_tools/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import Depends, FastAPI

from blacksmith_tools import __version__
from blacksmith_tools.config import CONFIG
from blacksmith_tools.endpoints import tools
from blacksmith_tools.logger import logger, setup_logging_file
from blacksmith_tools.security import verify_api_key


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Blacksmith tools server")
    yield
    logger.info("Blacksmith tools server stopped")


def create_app() -> FastAPI:
    app = FastAPI(title="blacksmith-tools", version=__version__, lifespan=lifespan)
    app.include_router(tools.router, dependencies=[Depends(verify_api_key)])
    return app


app = create_app()


def run() -> None:
    setup_logging_file()
    host = CONFIG.get("Server", "host", fallback="127.0.0.1")
    port = CONFIG.getint("Server", "port", fallback=6970)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()

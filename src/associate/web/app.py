# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
FastAPI application serving the HTTP CRUD interface.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import settings
from ..engine import get_or_open_engine, get_shared_engine
from .api import graph
from .dependencies import set_engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    owned = get_shared_engine() is None
    engine = await get_or_open_engine(settings)
    logger.info(f"HTTP interface ready (store backend: {engine.store.backend_name})")
    yield
    if owned:
        logger.info("Shutting down graph engine...")
        set_engine(None)
        await engine.close()


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 with the same error shape as engine errors."""
    message = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
    return JSONResponse(status_code=400, content={"detail": {"reason": "validation_error", "message": message}})


def create_app() -> FastAPI:
    app = FastAPI(
        title="associate",
        description="Graph memory engine HTTP interface",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(graph.router, prefix="/api")
    return app


app = create_app()


def main():
    """Entry point for the HTTP interface."""
    import uvicorn

    logging.basicConfig(
        level=settings.server.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    uvicorn.run(app, host=settings.server.host, port=settings.server.web_port)


if __name__ == "__main__":
    main()

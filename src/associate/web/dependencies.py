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
FastAPI dependencies for the HTTP interface.
"""

import logging

from fastapi import HTTPException

from ..engine import GraphEngine, get_shared_engine, set_shared_engine
from ..errors import GraphError, IsolationViolationError, NotFoundError, StoreConnectionError, StoreError

logger = logging.getLogger(__name__)


def set_engine(engine: GraphEngine | None) -> None:
    """Set the engine the HTTP routes operate on."""
    set_shared_engine(engine)


def get_engine() -> GraphEngine:
    """Get the shared graph engine."""
    engine = get_shared_engine()
    if engine is None:
        raise HTTPException(status_code=503, detail="Graph engine not initialized")
    return engine


def http_error(e: GraphError) -> HTTPException:
    """Map an engine error to the HTTP status the desktop client expects."""
    if isinstance(e, NotFoundError):
        status_code = 404
    elif isinstance(e, IsolationViolationError):
        status_code = 403
    elif isinstance(e, (StoreError, StoreConnectionError)):
        logger.error(f"Store failure serving request: {e}")
        status_code = 503
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail=e.to_dict())

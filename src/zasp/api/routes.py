"""REST API endpoints for the ASP server."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from zasp.chain.events import get_selector_from_name
from zasp.chain.rpc import ChainProvider, StarknetRpcProvider
from zasp.config import Settings, get_settings
from zasp.core.indexer import ChainSynchronizer
from zasp.core.pool import PoolState
from zasp.core.query import resolve_path
from zasp.models.schemas import (
    MerklePathRequest,
    MerklePathResponse,
    PoolStateResponse,
    TokensResponse,
)
from zasp.storage import LeafStore

# Configure logging
logger = logging.getLogger(__name__)

HEALTH_TEXT = "Zylith ASP Server is healthy"


def build_synchronizer(settings: Settings, pool: PoolState,
                       provider: Optional[ChainProvider] = None) -> ChainSynchronizer:
    """Wire a synchronizer from settings."""
    if provider is None:
        provider = StarknetRpcProvider(settings.starknet_rpc_url, timeout=settings.rpc_timeout)
    return ChainSynchronizer(
        pool,
        provider,
        contract_address=settings.pool_address,
        event_selector=get_selector_from_name(settings.deposit_event_name),
        page_size=settings.event_page_size,
        poll_interval=settings.poll_interval,
        paginate=settings.sync_paginate,
    )


def create_app(
    settings: Optional[Settings] = None,
    pool: Optional[PoolState] = None,
    provider: Optional[ChainProvider] = None,
    start_synchronizer: Optional[bool] = None,
) -> FastAPI:
    """
    Build the API application.

    The pool state handle is owned by the app (`app.state.pool`) and shared
    with the synchronizer. When no pool is given it is hydrated from the
    leaf store at startup; a failure there aborts startup.

    Args:
        settings: Configuration (default: environment)
        pool: Pre-built pool state, mainly for tests
        provider: Chain provider override
        start_synchronizer: Run the background indexer (default: settings.sync_enabled)
    """
    settings = settings or get_settings()
    if start_synchronizer is None:
        start_synchronizer = settings.sync_enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.pool is None:
            store = LeafStore(settings.database_url)
            app.state.pool = PoolState.load(
                store, tree_height=settings.tree_height, start_block=settings.start_block
            )

        synchronizer = None
        if start_synchronizer:
            synchronizer = build_synchronizer(settings, app.state.pool, provider)
            synchronizer.start()
        app.state.synchronizer = synchronizer
        try:
            yield
        finally:
            if synchronizer is not None:
                synchronizer.stop()

    app = FastAPI(
        title="Zylith ASP API",
        description="Commitment tree indexer and inclusion path service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pool = pool
    app.state.synchronizer = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom exception handler for validation errors - convert 422 to 400
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Convert Pydantic validation errors (422) to 400 Bad Request."""
        error_messages = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            error_messages.append(f"{field}: {error['msg']}")

        return JSONResponse(
            status_code=400,
            content={"detail": "; ".join(error_messages)}
        )

    # ========================================================================
    # System Endpoints
    # ========================================================================

    @app.get("/health", response_class=PlainTextResponse, tags=["System"])
    async def health_check():
        """Liveness check."""
        return HEALTH_TEXT

    @app.get("/state", response_model=PoolStateResponse, tags=["System"])
    def get_state(request: Request):
        """Get current pool state."""
        state = request.app.state.pool.get_state()
        return PoolStateResponse(
            root=state["root"],
            tree_height=state["height"],
            num_leaves=state["num_leaves"],
            last_indexed_block=state["last_indexed_block"],
        )

    @app.get("/tokens", response_model=TokensResponse, tags=["System"])
    async def get_tokens():
        """Configured pool tokens."""
        return TokensResponse(tokens=settings.tokens)

    # ========================================================================
    # Tree Endpoints
    # ========================================================================

    # Sync handler: runs in the threadpool, so blocking on the pool's
    # read lock does not stall the event loop.
    @app.post("/get_path", response_model=MerklePathResponse, tags=["Tree"])
    def get_merkle_path(payload: MerklePathRequest, request: Request):
        """
        Get the inclusion path for a commitment or note hash.

        Unknown commitments return the not-found sentinel (root 0x0, empty
        path) with status 200.
        """
        result = resolve_path(request.app.state.pool, payload.commitment, payload.note_hash)
        if not result.found:
            logger.info(f"Path requested for unknown commitment {result.commitment}")
        return MerklePathResponse(**result.to_dict())

    return app


app = create_app()


def main() -> None:
    """Run the ASP server."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Zylith ASP Server running on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

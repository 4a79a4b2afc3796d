"""FastAPI route handlers for the learning API."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query, status

from curator.api.validation import (
    ConfigResponse,
    ErrorResponse,
    HealthResponse,
    PosteriorsResponse,
    ResetRequest,
    RewardRequest,
    TracesResponse,
)
from curator.core.config import Settings
from curator.core.defaults import DEFAULT_TRACE_LIST_LIMIT
from curator.core.exceptions import OracleError, StoreError
from curator.core.models import LearningSummary, ResetReport, RewardReport
from curator.engines.curator import ContextCurator
from curator.oracle.models import OracleStatus
from curator.operations import (
    list_posteriors,
    oracle_status,
    record_reward,
    reset_learning,
    resolve_arm_id,
    summarize,
)

logger = logging.getLogger(__name__)

UNAVAILABLE = {503: {"model": ErrorResponse}}


def _unavailable(e: StoreError) -> HTTPException:
    logger.error(f"Learning store unavailable: {e}")
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Learning store unavailable: {e.message}",
    )


def create_routes(curator: ContextCurator, config: Settings) -> APIRouter:
    """Create and configure learning API routes.

    Args:
        curator: Curator whose store and learning config back the routes
        config: Settings reported by GET /learning/config

    Returns:
        Configured APIRouter
    """
    api_router = APIRouter()
    store = curator.store
    learning = curator.config

    @api_router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(
            status="healthy", timestamp=datetime.now(UTC).isoformat()
        )

    # GET /learning/summary - Trace counts, token totals, baseline savings
    @api_router.get(
        "/learning/summary", response_model=LearningSummary, responses=UNAVAILABLE
    )
    async def summary() -> LearningSummary:
        try:
            return await summarize(store)
        except StoreError as e:
            raise _unavailable(e) from e

    # GET /learning/posteriors - Per-arm posteriors, best first
    @api_router.get(
        "/learning/posteriors",
        response_model=PosteriorsResponse,
        responses=UNAVAILABLE,
    )
    async def posteriors() -> PosteriorsResponse:
        try:
            views = await list_posteriors(
                store, learning.min_pulls, learning.seed_arm_ids
            )
        except StoreError as e:
            raise _unavailable(e) from e
        return PosteriorsResponse(learner=learning.learner_name, posteriors=views)

    @api_router.get("/learning/config", response_model=ConfigResponse)
    async def learning_config() -> ConfigResponse:
        return ConfigResponse(
            learning=learning,
            store_backend=config.store_backend,
            oracle=config.oracle,
        )

    # GET /learning/oracle - Metrics and posteriors held by the remote learner
    @api_router.get(
        "/learning/oracle",
        response_model=OracleStatus,
        responses={404: {"model": ErrorResponse}, **UNAVAILABLE},
    )
    async def oracle() -> OracleStatus:
        if curator.observer is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No remote oracle configured",
            )
        try:
            return await oracle_status(
                curator.observer, learning.min_pulls, learning.seed_arm_ids
            )
        except OracleError as e:
            logger.error(f"Remote oracle unavailable: {e}")
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Remote oracle unavailable: {e.message}",
            ) from e

    # GET /learning/traces - Recent traces, newest first
    @api_router.get(
        "/learning/traces", response_model=TracesResponse, responses=UNAVAILABLE
    )
    async def traces(
        limit: int = Query(DEFAULT_TRACE_LIST_LIMIT, ge=1, le=1000),
        offset: int = Query(0, ge=0),
        session_key: str | None = None,
    ) -> TracesResponse:
        try:
            items = await store.list_traces(
                limit=limit, offset=offset, session_key=session_key
            )
            total = await store.count_traces()
        except StoreError as e:
            raise _unavailable(e) from e
        return TracesResponse(total=total, traces=items)

    # POST /learning/reset - Reset posteriors to the uniform prior
    @api_router.post(
        "/learning/reset", response_model=ResetReport, responses=UNAVAILABLE
    )
    async def reset(request: ResetRequest | None = None) -> ResetReport:
        arm_id = request.arm_id if request else None
        try:
            return await reset_learning(
                store, learning.learner_name, oracle=curator.observer, arm_id=arm_id
            )
        except StoreError as e:
            raise _unavailable(e) from e

    # POST /learning/reward - Operator reward for one arm
    @api_router.post(
        "/learning/reward", response_model=RewardReport, responses=UNAVAILABLE
    )
    async def reward(request: RewardRequest) -> RewardReport:
        try:
            known = await store.load()
            arm_id = resolve_arm_id(request.label, known.keys())
            return await record_reward(
                store, arm_id, request.reward, oracle=curator.observer
            )
        except StoreError as e:
            raise _unavailable(e) from e

    return api_router

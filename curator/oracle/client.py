"""HTTP client for a remote decision oracle (learner service).

Every operation is ``POST {base_url}/{operation}`` with a JSON body and a
bounded timeout. The oracle is optional: any transport error, timeout,
non-2xx status, or malformed payload is logged at debug level and surfaces
as None, and the caller degrades to its local path.

Operations:
    - select: choose arms for a turn under a token budget
    - observe: report a reward for one arm
    - posteriors / metrics: read-only queries
    - reset: reset posteriors for the learner
"""

import logging
from collections.abc import Sequence
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from curator.core.defaults import (
    DEFAULT_LEARNER_NAME,
    ORACLE_OBSERVE_TIMEOUT,
    ORACLE_QUERY_TIMEOUT,
    ORACLE_SELECT_TIMEOUT,
)
from curator.core.models import Arm, LearningPhase, SelectionContext, SelectionResult
from curator.oracle.models import (
    OracleArm,
    OracleMetrics,
    OracleObservation,
    OraclePosteriors,
    OracleReset,
    OracleSelectResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class OracleClient:
    """Async client for the learner service.

    Attributes:
        base_url: Service base URL (no trailing slash)
        learner: Learner namespace sent with every call

    Example:
        >>> client = OracleClient("http://localhost:8400/learning", learner="curator")
        >>> result = await client.select(arms, context=SelectionContext(), token_budget=8000)
        >>> if result is None:
        ...     pass  # oracle unavailable, use fallback
        >>> await client.aclose()
    """

    def __init__(
        self,
        base_url: str,
        learner: str = DEFAULT_LEARNER_NAME,
        api_key: str | None = None,
        select_timeout: float = ORACLE_SELECT_TIMEOUT,
        observe_timeout: float = ORACLE_OBSERVE_TIMEOUT,
        query_timeout: float = ORACLE_QUERY_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.learner = learner
        self.select_timeout = select_timeout
        self.observe_timeout = observe_timeout
        self.query_timeout = query_timeout
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        self._client = httpx.AsyncClient(headers=headers, transport=transport)

    async def __aenter__(self) -> "OracleClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        operation: str,
        payload: dict[str, Any],
        timeout: float,
        response_model: type[M],
    ) -> M | None:
        try:
            response = await self._client.post(
                f"{self.base_url}/{operation}", json=payload, timeout=timeout
            )
            response.raise_for_status()
            return response_model.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            logger.debug(
                f"Oracle {operation} failed: HTTP {e.response.status_code}"
            )
        except httpx.RequestError as e:
            logger.debug(f"Oracle {operation} failed: {type(e).__name__}: {e}")
        except (ValueError, ValidationError) as e:
            logger.debug(f"Oracle {operation} returned an invalid payload: {e}")
        return None

    async def select(
        self,
        candidates: Sequence[Arm],
        *,
        context: SelectionContext,
        token_budget: int,
        k: int = 0,
        phase: LearningPhase | None = None,
    ) -> SelectionResult | None:
        """Ask the oracle to choose arms.

        Args:
            candidates: Candidate arms for this turn
            context: Turn metadata (sent with the learning phase)
            token_budget: Token budget (0 = unlimited)
            k: Maximum number of arms (0 = as many as fit)
            phase: Learning phase, forwarded for experiment tracking

        Returns:
            SelectionResult, or None if the oracle is unavailable
        """
        payload = {
            "learner": self.learner,
            "candidates": [
                OracleArm(
                    id=arm.id,
                    metadata={
                        "type": arm.type.value,
                        "category": arm.category,
                        "label": arm.label,
                        **arm.metadata,
                    },
                    token_cost=arm.token_cost,
                ).model_dump()
                for arm in candidates
            ],
            "context": context.to_oracle_context(phase),
            "k": k,
            "token_budget": token_budget,
        }
        response = await self._call(
            "select", payload, self.select_timeout, OracleSelectResponse
        )
        return response.to_selection_result() if response else None

    async def observe(
        self,
        arm_id: str,
        outcome: str,
        reward: float = 0.0,
        context: dict[str, Any] | None = None,
    ) -> OracleObservation | None:
        """Report a reward for one arm (None on failure)."""
        payload = {
            "learner": self.learner,
            "arm_id": arm_id,
            "outcome": outcome,
            "reward": reward,
            "context": context,
        }
        return await self._call(
            "observe", payload, self.observe_timeout, OracleObservation
        )

    async def posteriors(
        self,
        arm_ids: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> OraclePosteriors | None:
        payload = {"learner": self.learner, "context": context, "arm_ids": arm_ids}
        return await self._call(
            "posteriors", payload, self.query_timeout, OraclePosteriors
        )

    async def metrics(self, window: int | None = None) -> OracleMetrics | None:
        payload = {"learner": self.learner, "window": window}
        return await self._call("metrics", payload, self.query_timeout, OracleMetrics)

    async def reset(self, arm_ids: list[str] | None = None) -> OracleReset | None:
        """Reset posteriors at the oracle (all arms when ``arm_ids`` is None)."""
        payload = {"learner": self.learner, "arm_ids": arm_ids}
        return await self._call("reset", payload, self.query_timeout, OracleReset)

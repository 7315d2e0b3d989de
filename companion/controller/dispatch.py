"""Periodic dispatch cycle: buffered text -> inference -> rules -> actor."""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections import Counter
from collections.abc import Callable
from enum import Enum

from structlog.stdlib import BoundLogger

from companion.common.config import DispatchConfig
from companion.common.logging import correlation_context, get_logger
from companion.text.models import TextUnit

from .actor_client import ActorClient, ActorDispatchError
from .llm_client import InferenceClient
from .models import ActionRequest
from .rules import ActionRouter, BehaviorRuleEngine

logger = get_logger(__name__, service_name="controller")


class DispatchOutcome(str, Enum):
    """What a single dispatch tick did."""

    EMPTY = "empty"
    STALE = "stale"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    INFERENCE_FAILED = "inference_failed"
    EMPTY_OUTPUT = "empty_output"
    DISPATCHED = "dispatched"
    DISPATCH_FAILED = "dispatch_failed"
    ERROR = "error"


class DispatchCycle:
    """Moves at most one text unit through the pipeline per tick.

    Ticks are strictly sequential; ``run`` waits the configured interval
    after each tick, so the interval is the minimum spacing between them.
    """

    def __init__(
        self,
        latest_text: Callable[[], TextUnit | None],
        inference: InferenceClient,
        behavior_engine: BehaviorRuleEngine,
        router: ActionRouter,
        actor: ActorClient,
        config: DispatchConfig,
    ) -> None:
        self._latest_text = latest_text
        self._inference = inference
        self._behavior_engine = behavior_engine
        self._router = router
        self._actor = actor
        self._interval = config.interval_ms / 1000.0
        self._max_unit_age = config.max_unit_age_seconds
        self._outcomes: Counter[str] = Counter()
        self._outcomes_lock = threading.Lock()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def outcome_counts(self) -> dict[str, int]:
        with self._outcomes_lock:
            return dict(self._outcomes)

    async def run_once(self) -> DispatchOutcome:
        """Run one tick and record its outcome."""
        with correlation_context(f"dispatch-{uuid.uuid4().hex[:12]}") as cycle_logger:
            outcome = await self._tick(cycle_logger)
        self._record(outcome)
        return outcome

    async def run(self, stop_event: asyncio.Event) -> None:
        logger.info("dispatch.started", interval_seconds=self._interval)
        while not stop_event.is_set():
            try:
                await self.run_once()
            except Exception as exc:
                self._record(DispatchOutcome.ERROR)
                logger.error(
                    "dispatch.cycle_failed",
                    error=str(exc),
                    error_type=type(exc).__name__,
                    exc_info=True,
                )

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                continue
        logger.info("dispatch.stopped", outcomes=self.outcome_counts())

    async def _tick(self, cycle_logger: BoundLogger) -> DispatchOutcome:
        unit = self._latest_text()
        if unit is None:
            return DispatchOutcome.EMPTY

        if self._max_unit_age > 0:
            age = unit.age_seconds()
            if age > self._max_unit_age:
                cycle_logger.info(
                    "dispatch.unit_stale",
                    source=unit.source,
                    age_seconds=round(age, 3),
                    max_age_seconds=self._max_unit_age,
                )
                return DispatchOutcome.STALE

        if not await self._inference.ensure_available():
            health = self._inference.health
            cycle_logger.debug(
                "dispatch.backend_unavailable",
                source=unit.source,
                message=health.message,
            )
            return DispatchOutcome.BACKEND_UNAVAILABLE

        result = await self._inference.process(unit.text)
        if not result.success:
            cycle_logger.warning(
                "dispatch.inference_failed",
                source=unit.source,
                error=result.error,
            )
            return DispatchOutcome.INFERENCE_FAILED

        final_text = self._behavior_engine.apply(unit.text, result.text)
        if not final_text.strip():
            cycle_logger.info("dispatch.empty_output", source=unit.source)
            return DispatchOutcome.EMPTY_OUTPUT

        routed = self._router.route(final_text)
        request = ActionRequest(
            action=routed.action_type,
            text=final_text,
            input_text=unit.text,
            parameters=routed.parameters,
        )
        try:
            await self._actor.perform(request)
        except ActorDispatchError as exc:
            cycle_logger.error(
                "dispatch.actor_failed",
                action=routed.action_type,
                error=str(exc),
            )
            return DispatchOutcome.DISPATCH_FAILED

        cycle_logger.info(
            "dispatch.action_dispatched",
            source=unit.source,
            action=routed.action_type,
            input_length=len(unit.text),
            output_length=len(final_text),
        )
        return DispatchOutcome.DISPATCHED

    def _record(self, outcome: DispatchOutcome) -> None:
        with self._outcomes_lock:
            self._outcomes[outcome.value] += 1


__all__ = ["DispatchCycle", "DispatchOutcome"]

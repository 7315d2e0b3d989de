"""Wires text ingestion, inference, rules and actor dispatch into one pipeline."""

from __future__ import annotations

import asyncio
from types import TracebackType

from companion.common.config import PipelineConfig
from companion.common.logging import get_logger
from companion.text.service import TextStreamService

from .actor_client import ActorClient
from .dispatch import DispatchCycle
from .llm_client import InferenceClient
from .models import PipelineStatus
from .rules import ActionRouter, BehaviorRuleEngine

logger = get_logger(__name__, service_name="controller")


class CompanionPipeline:
    """Owns every pipeline component and the background tasks that drive them."""

    def __init__(
        self,
        config: PipelineConfig,
        *,
        inference_client: InferenceClient | None = None,
        actor_client: ActorClient | None = None,
    ) -> None:
        self.config = config
        self.text_service = TextStreamService(config.text, config.additional_sources)
        self.inference = inference_client or InferenceClient(
            config.inference, config.behavior
        )
        self.behavior_engine = BehaviorRuleEngine(config.behavior.behavior_rules)
        self.router = ActionRouter(
            config.behavior.action_mappings, config.dispatch.default_action
        )
        self.actor = actor_client or ActorClient(config.dispatch)
        self.dispatch = DispatchCycle(
            self.text_service.get_latest_text,
            self.inference,
            self.behavior_engine,
            self.router,
            self.actor,
            config.dispatch,
        )

        self._stop_event = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def is_running(self) -> bool:
        return bool(self._tasks) and not self._stop_event.is_set()

    async def start(self) -> None:
        if self._tasks:
            return

        self._stop_event.clear()
        # A failed startup check only starts the cooldown; dispatch re-checks later
        await self.inference.check_health()

        self._tasks = self.text_service.start_tasks(self._stop_event)
        self._tasks.append(
            asyncio.create_task(self.dispatch.run(self._stop_event), name="dispatch")
        )
        logger.info(
            "pipeline.started",
            model=self.inference.model,
            backend_available=self.inference.is_available,
            sources=[m.source_name for m in self.text_service.monitors],
        )

    async def stop(self) -> None:
        self._stop_event.set()
        if self._tasks:
            results = await asyncio.gather(*self._tasks, return_exceptions=True)
            for task, result in zip(self._tasks, results):
                if isinstance(result, Exception):
                    logger.error(
                        "pipeline.task_failed",
                        task=task.get_name(),
                        error=str(result),
                        error_type=type(result).__name__,
                    )
            self._tasks = []

        await self.inference.aclose()
        await self.actor.aclose()
        logger.info("pipeline.stopped", outcomes=self.dispatch.outcome_counts())

    async def __aenter__(self) -> CompanionPipeline:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    def status(self) -> PipelineStatus:
        health = self.inference.health
        return PipelineStatus(
            buffer_depth=self.text_service.get_buffer_count(),
            backend_available=health.available,
            backend_last_checked_at=health.last_checked_at,
            backend_message=health.message,
            model=self.inference.model,
            chat_history_length=len(self.inference.history),
            enabled_behavior_rules=self.behavior_engine.enabled_count,
            action_mappings=len(self.router.mappings),
            dispatch_outcomes=self.dispatch.outcome_counts(),
            sources=[monitor.status() for monitor in self.text_service.monitors],
        )


__all__ = ["CompanionPipeline"]

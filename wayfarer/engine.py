"""Turn engine: one user message through the batch executor.

Handles the complete turn lifecycle:
- Session loading and persistence (via SessionStore)
- Route resolution and step position tracking
- Prompt building and the single provider call per turn
- Route completion and ``on_complete`` transitions
"""

import asyncio
import time
from typing import Any
from uuid import uuid4

from wayfarer.batch.executor import BatchExecutor
from wayfarer.batch.hooks import HookDispatcher
from wayfarer.batch.models import (
    BatchExecutionResult,
    BatchResult,
    GenerationOutput,
    StoppedReason,
)
from wayfarer.batch.needs_input import missing_required_fields, needs_input
from wayfarer.config import Settings, get_settings
from wayfarer.config.models.engine import EngineConfig, GenerationConfig
from wayfarer.conversation.models import SessionState
from wayfarer.conversation.state import (
    append_message,
    complete_route,
    completed_route_ids,
    create_session,
    enter_route,
    enter_step,
    merge_data,
    set_pending_route,
)
from wayfarer.conversation.store import SessionStore
from wayfarer.conversation.stores import create_session_store
from wayfarer.errors import RouteConfigurationError
from wayfarer.flow.models import END_ROUTE_ID, AgentDefinition, Route, Step
from wayfarer.generation.extraction import RouteDataExtractor
from wayfarer.generation.prompt_builder import BatchPromptBuilder
from wayfarer.observability import setup_observability
from wayfarer.observability.logging import (
    bind_turn_context,
    clear_turn_context,
    get_logger,
)
from wayfarer.providers.llm import LLMProvider
from wayfarer.result import TurnResult

logger = get_logger(__name__)


class TurnEngine:
    """Process user messages for one agent.

    Each turn:
    1. Load (or create) the session and record the user message
    2. Resolve the route, skipping routes already completed
    3. Optionally pre-extract route data from the message
    4. Unless the route's required data is already complete, determine the
       batch, build one prompt for it and call the provider once
    5. Execute the batch (hooks, collection, validation)
    6. Move the session position (completing the route and queueing its
       ``on_complete`` target when done), record the reply and persist
    """

    def __init__(
        self,
        agent: AgentDefinition,
        provider: LLMProvider,
        session_store: SessionStore | None = None,
        config: EngineConfig | None = None,
        generation_config: GenerationConfig | None = None,
        prompt_builder: BatchPromptBuilder | None = None,
        executor: BatchExecutor | None = None,
        dispatcher: HookDispatcher | None = None,
        data_extractor: RouteDataExtractor | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            agent: Agent definition with at least one route
            provider: LLM provider for the generation call
            session_store: Store for session state (enables persistence)
            config: Engine behaviour
            generation_config: Model call parameters
            prompt_builder: Builder for batch prompts
            executor: Batch executor (share one to share event listeners)
            dispatcher: Hook dispatcher; defaults to one over the agent tools
            data_extractor: Route data pre-extraction; defaults to an LLM
                extractor when ``pre_extract_route_data`` is enabled
        """
        if not agent.routes:
            raise RouteConfigurationError(f"Agent '{agent.name}' has no routes")

        self._agent = agent
        self._provider = provider
        self._session_store = session_store
        self._config = config or EngineConfig()
        self._generation = generation_config or GenerationConfig()
        self._prompt_builder = prompt_builder or BatchPromptBuilder(
            max_history_messages=self._config.max_history_messages
        )
        self._executor = executor or BatchExecutor(emit_events=self._config.emit_events)
        self._dispatcher = dispatcher or HookDispatcher(
            agent.tool_registry(), strict=self._config.strict_hooks
        )
        if data_extractor is None and self._config.pre_extract_route_data:
            data_extractor = RouteDataExtractor(provider, self._generation)
        self._extractor = data_extractor

    @classmethod
    def from_settings(
        cls,
        agent: AgentDefinition,
        provider: LLMProvider,
        settings: Settings | None = None,
    ) -> "TurnEngine":
        """Build an engine and its session store from configuration."""
        settings = settings or get_settings()
        setup_observability(settings.observability)
        return cls(
            agent,
            provider,
            session_store=create_session_store(settings.storage.session),
            config=settings.engine,
            generation_config=settings.generation,
        )

    @property
    def executor(self) -> BatchExecutor:
        return self._executor

    async def process_turn(
        self,
        message: str,
        *,
        session_id: str | None = None,
        session: SessionState | None = None,
        route_id: str | None = None,
        context: Any = None,
        persist: bool = True,
        cancel_event: asyncio.Event | None = None,
    ) -> TurnResult:
        """Process a user message.

        Args:
            message: The user's message
            session_id: Session to load from the store (a new session is
                created under this id when none is stored)
            session: Pre-loaded session (skips the store load)
            route_id: Route to run; defaults to the session's current route,
                then the agent's first route
            context: Caller context handed to skip predicates and hooks
            persist: Whether to save the session after the turn
            cancel_event: Setting this during the model call ends the turn
                with ``llm_error``

        Returns:
            TurnResult with the reply and the updated session
        """
        start_time = time.perf_counter()
        turn_id = uuid4().hex

        if session is None:
            session = await self._load_session(session_id)

        bind_turn_context(session.session_id, turn_id=turn_id)
        try:
            return await self._process_turn_impl(
                message=message,
                turn_id=turn_id,
                session=session,
                route_id=route_id,
                context=context,
                persist=persist,
                cancel_event=cancel_event,
                start_time=start_time,
            )
        finally:
            clear_turn_context()

    async def _process_turn_impl(
        self,
        message: str,
        turn_id: str,
        session: SessionState,
        route_id: str | None,
        context: Any,
        persist: bool,
        cancel_event: asyncio.Event | None,
        start_time: float,
    ) -> TurnResult:
        logger.info(
            "processing_turn",
            session_id=session.session_id,
            message_length=len(message),
        )
        pre_turn = session

        session = append_message(session, "user", message)
        route, session = self._resolve_route(session, route_id)
        if route is None:
            logger.info("no_route_available", completed=completed_route_ids(session))
            if persist and self._session_store is not None:
                await self._session_store.save(session)
            return self._build_result(
                turn_id,
                message,
                None,
                session,
                BatchExecutionResult(
                    session=session, stopped_reason=StoppedReason.ROUTE_COMPLETE
                ),
                start_time,
            )

        if session.route_id != route.id:
            session = enter_route(
                session,
                route.id,
                route.title,
                max_route_history=self._config.max_route_history,
            )
            logger.info("route_entered", route_id=route.id, title=route.title)

        if self._extractor is not None:
            extracted = await self._extractor.extract(route, session, self._agent, message)
            session = merge_data(session, extracted)

        run_batch: BatchResult | None = None
        focused = False
        if self._completed_by_data(route, session):
            logger.info("route_data_complete", route_id=route.id)
            result = BatchExecutionResult(
                session=session, stopped_reason=StoppedReason.ROUTE_COMPLETE
            )
        else:
            batch = await self._executor.determine_batch(
                route, session.step_id, session.data, context
            )
            run_batch, focused = self._focus_if_waiting(batch, session)
            pending_step = (
                batch.stopped_at_step
                if batch.stopped_reason == StoppedReason.NEEDS_INPUT and not focused
                else None
            )
            result = await self._execute(
                run_batch, route, session, context, pending_step, cancel_event
            )

        if result.stopped_reason.is_fatal:
            logger.warning(
                "turn_failed",
                stopped_reason=result.stopped_reason.value,
                error=result.error.message if result.error else None,
            )
            return self._build_result(
                turn_id, message, route.id, pre_turn, result, start_time, focused=focused
            )

        final_session, stopped_reason = await self._advance_position(
            result.session, route, run_batch, focused, result.stopped_reason, context
        )
        if result.message:
            final_session = append_message(final_session, "assistant", result.message)
        if persist and self._session_store is not None:
            await self._session_store.save(final_session)

        return self._build_result(
            turn_id,
            message,
            route.id,
            final_session,
            result.model_copy(update={"stopped_reason": stopped_reason}),
            start_time,
            focused=focused,
        )

    def _build_result(
        self,
        turn_id: str,
        message: str,
        route_id: str | None,
        session: SessionState,
        result: BatchExecutionResult,
        start_time: float,
        *,
        focused: bool = False,
    ) -> TurnResult:
        total_time_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "turn_processed",
            route_id=route_id,
            stopped_reason=result.stopped_reason.value,
            executed_steps=[ref.id for ref in result.executed_steps],
            focused=focused,
            total_time_ms=total_time_ms,
        )
        return TurnResult(
            turn_id=turn_id,
            session_id=session.session_id,
            route_id=route_id,
            user_message=message,
            session=session,
            message=result.message,
            stopped_reason=result.stopped_reason,
            executed_steps=result.executed_steps,
            collected_data=result.collected_data,
            focused=focused,
            error=result.error,
            validation_errors=result.validation_errors,
            finalize_errors=result.finalize_errors,
            timing=result.timing,
            total_time_ms=total_time_ms,
        )

    async def _load_session(self, session_id: str | None) -> SessionState:
        if session_id is not None and self._session_store is not None:
            stored = await self._session_store.get(session_id)
            if stored is not None:
                return stored
        logger.debug("session_created", session_id=session_id)
        return create_session(session_id)

    def _resolve_route(
        self,
        session: SessionState,
        route_id: str | None,
    ) -> tuple[Route | None, SessionState]:
        """Pick the route for this turn.

        Order: the explicit ``route_id``, a route queued by a completed
        route's ``on_complete``, the session's current route, then the first
        agent route not yet completed. None when every route is done.
        """
        if route_id is not None:
            return self._agent.get_route(route_id), session

        pending = session.pending_route_id
        if pending is not None:
            session = set_pending_route(session, None)
            if self._agent.has_route(pending):
                logger.info("pending_route_selected", route_id=pending)
                return self._agent.get_route(pending), session
            logger.warning("pending_route_not_found", route_id=pending)

        if session.route_id is not None and self._agent.has_route(session.route_id):
            return self._agent.get_route(session.route_id), session

        completed = set(completed_route_ids(session))
        for route in self._agent.routes:
            if route.id not in completed:
                return route, session
        return None, session

    @staticmethod
    def _completed_by_data(route: Route, session: SessionState) -> bool:
        return bool(route.required_fields) and route.is_complete(session.data)

    def _focus_if_waiting(
        self,
        batch: BatchResult,
        session: SessionState,
    ) -> tuple[BatchResult, bool]:
        """Run the step waiting for input on its own when it may be entered.

        An empty batch stopped on a step whose ``requires`` are all present
        would otherwise never give the model a chance to ask for that step's
        data.
        """
        step = batch.stopped_at_step
        if (
            not self._config.focus_needs_input_step
            or not batch.is_empty
            or batch.stopped_reason != StoppedReason.NEEDS_INPUT
            or step is None
            or missing_required_fields(step, session.data)
        ):
            return batch, False
        logger.debug("focusing_needs_input_step", step_id=step.id)
        return (
            BatchResult(
                steps=[step],
                stopped_reason=StoppedReason.NEEDS_INPUT,
                stopped_at_step=step,
            ),
            True,
        )

    async def _execute(
        self,
        batch: BatchResult,
        route: Route,
        session: SessionState,
        context: Any,
        pending_step: Step | None,
        cancel_event: asyncio.Event | None,
    ) -> BatchExecutionResult:
        if batch.is_empty:
            return await self._executor.execute_batch(
                batch, session, context, self._no_generation, route_id=route.id
            )

        prompt = self._prompt_builder.build(
            batch.steps, route, session, self._agent, pending_step=pending_step
        )

        async def generate() -> GenerationOutput:
            response = await self._provider.generate(
                prompt.messages,
                model=self._generation.model,
                max_tokens=self._generation.max_tokens,
                temperature=self._generation.temperature,
                response_schema=prompt.response_schema,
            )
            structured = response.structured
            reply = structured.get("message") if structured else None
            return GenerationOutput(
                message=reply if isinstance(reply, str) else response.content,
                structured=structured,
            )

        return await self._executor.execute_batch(
            batch,
            session,
            context,
            generate,
            execute_hook=self._dispatcher.as_callback(route, session.session_id),
            schema=self._agent.data_schema,
            route_id=route.id,
            cancel_event=cancel_event,
        )

    @staticmethod
    async def _no_generation() -> GenerationOutput:
        raise RuntimeError("Empty batches never call the model")

    async def _advance_position(
        self,
        session: SessionState,
        route: Route,
        batch: BatchResult | None,
        focused: bool,
        stopped_reason: StoppedReason,
        context: Any,
    ) -> tuple[SessionState, StoppedReason]:
        """Move the session after a successful batch.

        Returns the new session and the stopped reason to report, which
        becomes ``end_route`` or ``route_complete`` when a focused step or the
        route's required data finishes the route. A validation error is
        always reported as such.
        """
        ending: StoppedReason | None = None
        if batch is None:
            ending = stopped_reason
        elif focused:
            step = batch.steps[0]
            if needs_input(step, session.data):
                session = enter_step(session, step.id, step.description)
            else:
                successors = route.next_step_ids(step.id)
                if not successors:
                    ending = StoppedReason.ROUTE_COMPLETE
                elif successors[0] == END_ROUTE_ID:
                    ending = StoppedReason.END_ROUTE
                else:
                    next_step = route.get_step(successors[0])
                    session = enter_step(session, next_step.id, next_step.description)
        elif batch.stopped_reason.ends_route:
            ending = batch.stopped_reason
        elif batch.stopped_at_step is not None:
            stopped = batch.stopped_at_step
            session = enter_step(session, stopped.id, stopped.description)

        if ending is None and self._completed_by_data(route, session):
            ending = StoppedReason.ROUTE_COMPLETE
        if ending is None:
            return session, stopped_reason

        session = await self._complete_route(session, route, context)
        if stopped_reason == StoppedReason.VALIDATION_ERROR:
            return session, stopped_reason
        return session, ending

    async def _complete_route(
        self,
        session: SessionState,
        route: Route,
        context: Any,
    ) -> SessionState:
        logger.info("route_completed", route_id=route.id)
        session = complete_route(session)

        try:
            target = await route.evaluate_on_complete(session.data, context)
        except Exception as exc:  # noqa: BLE001
            logger.error("on_complete_failed", route_id=route.id, error=str(exc))
            return session
        if target is None:
            return session
        next_route = self._find_route(target)
        if next_route is None:
            logger.warning("on_complete_route_not_found", route_id=route.id, target=target)
            return session
        logger.info("on_complete_route_queued", route_id=route.id, next_route_id=next_route.id)
        return set_pending_route(session, next_route.id)

    def _find_route(self, reference: str) -> Route | None:
        for route in self._agent.routes:
            if reference in (route.id, route.title):
                return route
        return None

"""Route data pre-extraction.

Before a batch is determined, the fields a route collects can be pulled out
of the latest user message with a dedicated extraction call, so steps whose
data the user already gave are not asked again.
"""

from typing import Any

from wayfarer.config.models.engine import GenerationConfig
from wayfarer.conversation.models import SessionState
from wayfarer.flow.models import AgentDefinition, Route
from wayfarer.observability.logging import get_logger
from wayfarer.providers.llm import LLMMessage, LLMProvider

logger = get_logger(__name__)


def route_extraction_fields(route: Route) -> list[str]:
    """Declared required and optional fields, then every step's collect fields."""
    fields = list(route.required_fields) + list(route.optional_fields)
    for step in route.all_steps():
        fields.extend(step.collect)
    return list(dict.fromkeys(fields))


def build_extraction_schema(
    fields: list[str],
    agent: AgentDefinition,
) -> dict[str, Any]:
    properties: dict[str, Any] = {}
    for field in fields:
        declared = agent.data_schema.field_schema(field) if agent.data_schema else None
        properties[field] = (
            declared.to_json_schema() if declared is not None else {"type": "string"}
        )
    return {"type": "object", "properties": properties, "additionalProperties": False}


class RouteDataExtractor:
    """Extracts route fields from the last user message with one model call.

    Failures are logged and yield no data; extraction never fails a turn.
    """

    def __init__(
        self,
        provider: LLMProvider,
        generation_config: GenerationConfig | None = None,
    ) -> None:
        self._provider = provider
        self._generation = generation_config or GenerationConfig()

    async def extract(
        self,
        route: Route,
        session: SessionState,
        agent: AgentDefinition,
        message: str,
    ) -> dict[str, Any]:
        fields = route_extraction_fields(route)
        if not fields:
            return {}

        lines = [
            "Extract any information from the user's message that matches the "
            "data fields below.",
            "Only extract information that is explicitly stated or clearly implied.",
            "",
            f'User\'s message: "{message}"',
            "",
            "Extract data for these fields if present:",
        ]
        if route.required_fields:
            lines.append(f"Required fields: {', '.join(route.required_fields)}")
        other = [f for f in fields if f not in route.required_fields]
        if other:
            lines.append(f"Other fields: {', '.join(other)}")
        lines += ["", "Return ONLY the extracted data as JSON, or {} if nothing applies."]

        try:
            response = await self._provider.generate(
                [
                    LLMMessage(role="system", content="\n".join(lines)),
                    LLMMessage(role="user", content=message),
                ],
                model=self._generation.model,
                max_tokens=self._generation.max_tokens,
                temperature=0.0,
                response_schema=build_extraction_schema(fields, agent),
            )
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "pre_extraction_failed",
                route_id=route.id,
                session_id=session.session_id,
                error=str(exc),
            )
            return {}

        structured = response.structured or {}
        extracted = {
            field: structured[field]
            for field in fields
            if structured.get(field) is not None
        }
        logger.debug("pre_extracted", route_id=route.id, fields=sorted(extracted))
        return extracted

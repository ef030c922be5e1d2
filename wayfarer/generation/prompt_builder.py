"""Prompt building for batch generation.

Combines the prompts of every step in a batch into one system prompt and
one response schema, so a batch of any size costs a single model call.
"""

import json
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from wayfarer.batch.collector import batch_collect_fields
from wayfarer.batch.needs_input import missing_required_fields
from wayfarer.conversation.models import SessionState
from wayfarer.flow.models import AgentDefinition, Guideline, Route, Step, StructuredSchema, Term
from wayfarer.generation.models import BatchPrompt
from wayfarer.providers.llm import LLMMessage

_SYSTEM_PROMPT_PATH = Path(__file__).parent / "prompts" / "system_prompt.txt"
_BLANK_RUN = re.compile(r"\n{3,}")


def build_response_schema(
    collect_fields: Sequence[str],
    schema: StructuredSchema | None = None,
) -> dict[str, Any]:
    """JSON schema of the structured response for a batch.

    ``message`` is always required; collect fields are optional and use the
    declared property schema when there is one.
    """
    properties: dict[str, Any] = {
        "message": {"type": "string", "description": "Your response to the user"},
    }
    for field in collect_fields:
        declared = schema.field_schema(field) if schema else None
        if declared is not None:
            field_schema = declared.to_json_schema()
            field_schema.setdefault("description", f"Collected value for {field}")
        else:
            field_schema = {"type": "string", "description": f"Collected value for {field}"}
        properties[field] = field_schema

    return {
        "type": "object",
        "properties": properties,
        "required": ["message"],
        "additionalProperties": True,
    }


class BatchPromptBuilder:
    """Build the prompt for a batch of steps.

    Sections, in order: agent identity, route, glossary, guidelines, the
    step section(s), data collection, known data, the pending step and the
    response format.
    """

    def __init__(
        self,
        system_template: str | None = None,
        max_history_messages: int = 20,
    ) -> None:
        if system_template:
            self._system_template = system_template
        else:
            self._system_template = _SYSTEM_PROMPT_PATH.read_text()
        self._max_history_messages = max_history_messages

    def build(
        self,
        steps: Sequence[Step],
        route: Route,
        session: SessionState,
        agent: AgentDefinition,
        pending_step: Step | None = None,
    ) -> BatchPrompt:
        collect_fields = batch_collect_fields(steps)
        system_prompt = self._system_template.format(
            agent_section=self._build_agent_section(agent),
            route_section=self._build_route_section(route),
            glossary_section=self._build_glossary_section([*agent.terms, *route.terms]),
            guidelines_section=self._build_guidelines_section(
                [*agent.guidelines, *route.guidelines]
            ),
            steps_section=self._build_steps_section(steps),
            collection_section=self._build_collection_section(
                collect_fields, agent.data_schema
            ),
            known_data_section=self._build_known_data_section(session.data),
            pending_section=self._build_pending_section(pending_step, session.data),
            response_format_section=self._build_response_format_section(collect_fields),
        )
        system_prompt = _BLANK_RUN.sub("\n\n", system_prompt).strip()

        return BatchPrompt(
            system_prompt=system_prompt,
            messages=self.build_messages(system_prompt, session),
            collect_fields=collect_fields,
            step_count=len(steps),
            response_schema=build_response_schema(collect_fields, agent.data_schema),
        )

    def build_messages(self, system_prompt: str, session: SessionState) -> list[LLMMessage]:
        """System prompt followed by the most recent conversation messages."""
        messages = [LLMMessage(role="system", content=system_prompt)]
        if self._max_history_messages > 0:
            recent = session.history[-self._max_history_messages :]
            messages.extend(LLMMessage(role=m.role, content=m.content) for m in recent)
        return messages

    def _build_agent_section(self, agent: AgentDefinition) -> str:
        lines = [f"You are {agent.name}."]
        if agent.description:
            lines.append(agent.description)
        if agent.goal:
            lines.append(f"**Goal:** {agent.goal}")
        if agent.identity:
            lines.append(f"**Identity:** {agent.identity}")
        if agent.personality:
            lines.append(f"**Personality:** {agent.personality}")
        if agent.knowledge_base:
            knowledge = json.dumps(agent.knowledge_base, indent=2, default=str)
            lines.append(f"**Knowledge Base:**\n{knowledge}")
        return "\n".join(lines)

    def _build_route_section(self, route: Route) -> str:
        lines = [f"## Conversation: {route.title}"]
        if route.description:
            lines.append(route.description)
        return "\n".join(lines)

    def _build_glossary_section(self, terms: list[Term]) -> str:
        if not terms:
            return ""
        lines = ["## Glossary"]
        for term in terms:
            synonyms = f" (also: {', '.join(term.synonyms)})" if term.synonyms else ""
            lines.append(f"- **{term.name}**{synonyms}: {term.description}")
        return "\n".join(lines)

    def _build_guidelines_section(self, guidelines: list[Guideline]) -> str:
        active = [g for g in guidelines if g.enabled]
        if not active:
            return ""
        lines = ["## Guidelines"]
        for i, guideline in enumerate(active, 1):
            if guideline.condition:
                lines.append(f"{i}. When {guideline.condition}: {guideline.action}")
            else:
                lines.append(f"{i}. {guideline.action}")
        return "\n".join(lines)

    def _build_steps_section(self, steps: Sequence[Step]) -> str:
        if not steps:
            return ""
        sections = []
        for number, step in enumerate(steps, 1):
            lines = [f"### Step {number}: {step.description or f'Step {number}'}"]
            if step.prompt:
                lines.append(step.prompt)
            if step.collect:
                lines.append(f"**Collect:** {', '.join(f'`{f}`' for f in step.collect)}")
            sections.append("\n".join(lines))

        if len(steps) == 1:
            return "## Current Step\n" + sections[0]
        return (
            "## Current Conversation Flow\n"
            "You are handling multiple aspects of this conversation in a single "
            "response.\n\n" + "\n\n".join(sections)
        )

    def _build_collection_section(
        self,
        collect_fields: list[str],
        schema: StructuredSchema | None,
    ) -> str:
        if not collect_fields:
            return ""
        lines = [
            "## Data Collection",
            "Extract the following information from the conversation:",
        ]
        for field in collect_fields:
            declared = schema.field_schema(field) if schema else None
            if declared is None:
                lines.append(f"- {field}")
                continue
            field_type = " | ".join(declared.allowed_types()) or "string"
            if declared.description:
                lines.append(f"- {field} ({field_type}): {declared.description}")
            else:
                lines.append(f"- {field} ({field_type})")
            if declared.enum:
                lines.append(f"  Allowed values: {', '.join(map(str, declared.enum))}")
        return "\n".join(lines)

    def _build_known_data_section(self, data: dict[str, Any]) -> str:
        known = {k: v for k, v in data.items() if v is not None}
        if not known:
            return ""
        lines = ["## Already Known", "Do not ask again for:"]
        for field, value in known.items():
            lines.append(f"- {field}: {json.dumps(value, default=str)}")
        return "\n".join(lines)

    def _build_pending_section(self, step: Step | None, data: dict[str, Any]) -> str:
        if step is None or step.is_end_route:
            return ""
        lines = ["## Next", "After handling the above, ask the user for what comes next."]
        if step.description:
            lines.append(f"Next step: {step.description}")
        needed = missing_required_fields(step, data) or list(step.collect)
        if needed:
            lines.append(f"Information needed: {', '.join(needed)}")
        return "\n".join(lines)

    def _build_response_format_section(self, collect_fields: list[str]) -> str:
        lines = [
            "## Response Format",
            "Return JSON with:",
            "- `message`: Your response to the user",
        ]
        if collect_fields:
            lines.append(
                "Include the following collected fields as top-level properties, "
                "omitting any the user has not provided:"
            )
            lines.extend(f"- `{field}`" for field in collect_fields)
        return "\n".join(lines)

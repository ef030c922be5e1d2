"""Batch data collection: merge extracted fields into the session."""

import copy
from collections.abc import Mapping, Sequence
from typing import Any

from wayfarer.batch.models import CollectBatchDataResult
from wayfarer.batch.validation import validate_against_schema
from wayfarer.conversation.models import SessionState
from wayfarer.conversation.state import merge_data
from wayfarer.flow.models import Step, StructuredSchema, is_present
from wayfarer.observability import metrics
from wayfarer.observability.logging import get_logger

logger = get_logger(__name__)


def batch_collect_fields(steps: Sequence[Step]) -> list[str]:
    """Union of the steps' collect fields, first-seen order."""
    fields: dict[str, None] = {}
    for step in steps:
        for field in step.collect:
            fields.setdefault(field, None)
    return list(fields)


def collect_batch_data(
    steps: Sequence[Step],
    structured_output: Mapping[str, Any] | None,
    session: SessionState,
    schema: StructuredSchema | None = None,
) -> CollectBatchDataResult:
    """Extract every collect field of the batch from the model output.

    Present values are merged into the session even when they fail schema
    validation; validation errors are reported alongside. Running this twice
    with the same output yields the same session data.
    """
    fields = batch_collect_fields(steps)
    if not fields:
        return CollectBatchDataResult(success=True, session=session)

    output = structured_output or {}
    collected: dict[str, Any] = {}
    missing: list[str] = []
    for field in fields:
        if is_present(output, field):
            collected[field] = copy.deepcopy(output[field])
        else:
            missing.append(field)

    validation_errors = []
    if schema is not None and collected:
        validation_errors = validate_against_schema(collected, schema)
        if validation_errors:
            metrics.record_validation_errors(len(validation_errors))
            logger.warning(
                "collected_data_invalid",
                fields=[e.field for e in validation_errors],
            )

    updated = merge_data(session, collected) if collected else session

    logger.debug(
        "batch_data_collected",
        fields_collected=list(collected),
        fields_missing=missing,
        validation_errors=len(validation_errors),
    )

    return CollectBatchDataResult(
        success=not validation_errors,
        collected_data=collected,
        session=updated,
        fields_collected=list(collected),
        fields_missing=missing,
        validation_errors=validation_errors,
    )

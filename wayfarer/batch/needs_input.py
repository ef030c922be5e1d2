"""Needs-input predicate.

``data`` must already include any fields extracted earlier in the turn.
"""

from collections.abc import Mapping
from typing import Any

from wayfarer.flow.models import Step, is_present


def missing_required_fields(step: Step, data: Mapping[str, Any]) -> list[str]:
    """Required fields of ``step`` absent from ``data``, in declaration order."""
    return [f for f in step.requires if not is_present(data, f)]


def needs_input(step: Step, data: Mapping[str, Any]) -> bool:
    """Return True when the step cannot run without more user input.

    ``requires`` is an AND gate: any absent required field means input is
    needed. ``collect`` is an OR gate: input is needed only when none of the
    collect fields is present yet.
    """
    if step.requires and missing_required_fields(step, data):
        return True
    if step.collect and not any(is_present(data, f) for f in step.collect):
        return True
    return False

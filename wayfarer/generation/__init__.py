"""Prompt construction for batch generation calls."""

from wayfarer.generation.extraction import RouteDataExtractor, route_extraction_fields
from wayfarer.generation.models import BatchPrompt
from wayfarer.generation.prompt_builder import BatchPromptBuilder, build_response_schema

__all__ = [
    "BatchPrompt",
    "BatchPromptBuilder",
    "RouteDataExtractor",
    "build_response_schema",
    "route_extraction_fields",
]

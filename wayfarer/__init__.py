"""Wayfarer: batch execution engine for data-collecting conversational agents.

A turn walks the active route's step graph, gathers every step that can run
without more user input into one batch, makes a single model call for that
batch and merges the extracted data into the session.
"""

__version__ = "0.1.0"

from wayfarer.engine import TurnEngine
from wayfarer.result import TurnResult

__all__ = ["TurnEngine", "TurnResult", "__version__"]

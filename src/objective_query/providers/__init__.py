"""Provider definitions for objective_query."""

from .base import BaseProvider
from .objectiveai import ObjectiveAIProvider

__all__ = [
    "BaseProvider",
    "ObjectiveAIProvider",
]

"""
Language model provider layer.
"""

from kozani.core.ai.base import BaseLanguageModelProvider, ModelInfo
from kozani.core.ai.model_provider import KOZANI_MODEL, KozaniModelProvider

__all__ = [
    "BaseLanguageModelProvider",
    "ModelInfo",
    "KOZANI_MODEL",
    "KozaniModelProvider",
]

"""Provider implementations."""

from app.ai.providers.base import AIModel, ModelResponse, Provider, SimpleModelResponse
from app.ai.providers.xai import XAIModel, XAIProvider

__all__ = ["AIModel", "ModelResponse", "Provider", "SimpleModelResponse", "XAIModel", "XAIProvider"]

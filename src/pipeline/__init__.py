"""Decision-engine building blocks: gate, fallback text and provider registry."""

from src.pipeline.fallback_generator import generate_fallback_text
from src.pipeline.meaningfulness_gate import is_meaningful_text
from src.pipeline.provider_registry import ProviderEntry, ProviderRegistry

__all__ = [
    "ProviderEntry",
    "ProviderRegistry",
    "generate_fallback_text",
    "is_meaningful_text",
]

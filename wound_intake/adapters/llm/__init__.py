"""Text-generation adapters."""

from wound_intake.adapters.llm.gemini_client import GeminiClient

__all__ = ["GeminiClient"]

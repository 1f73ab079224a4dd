"""Shared dependencies for API routes."""

from services.gemini_client import GeminiOracle
from services.pipeline.base import ExtractionOracle


def get_oracle() -> ExtractionOracle:
    return GeminiOracle()

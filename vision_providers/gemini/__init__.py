"""Generative backend adapter package."""

from .client import GenerativeAdapter
from .get_gemini_models import GenerativeModelInfo, list_generative_models

__all__ = ["GenerativeAdapter", "GenerativeModelInfo", "list_generative_models"]

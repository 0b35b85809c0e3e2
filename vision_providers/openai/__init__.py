"""Completions backend adapter package."""

from .client import CompletionsAdapter

__all__ = ["CompletionsAdapter"]

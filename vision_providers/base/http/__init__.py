"""HTTP helpers for backend adapters."""

from .client import HttpClientRegistry, raise_for_status

__all__ = ["HttpClientRegistry", "raise_for_status"]

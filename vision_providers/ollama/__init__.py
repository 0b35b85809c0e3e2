"""Local model server adapter package."""

from .client import LocalModelAdapter
from .get_ollama_models import (
    LocalModelInfo,
    ModelVerification,
    check_local_server,
    list_local_models,
    show_local_model,
    verify_local_model,
)

__all__ = [
    "LocalModelAdapter",
    "LocalModelInfo",
    "ModelVerification",
    "check_local_server",
    "list_local_models",
    "show_local_model",
    "verify_local_model",
]

"""Messages backend adapter package."""

from .client import MessagesAdapter, verify_messages_config
from .helpers import list_catalogue_models

__all__ = ["MessagesAdapter", "list_catalogue_models", "verify_messages_config"]

"""vision_providers.config.defaults
================================

Central place for small, stable default values used across the adapters and
the CLI. Environment variables or an external config file can override the
per-provider entries; the wire constants below are fixed.

This module intentionally avoids importing from other packages to prevent
circular dependencies. Only plain constants live here.
"""

from __future__ import annotations

MB = 1024 * 1024

# ---- Provider defaults ----
OPENAI_DEFAULT_MODEL = "gpt-4o"
GEMINI_DEFAULT_MODEL = "gemini-2.5-flash"
ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-5"
OLLAMA_DEFAULT_MODEL = "llava"
# IPv4 loopback only.
OLLAMA_DEFAULT_HOST = "http://127.0.0.1:11434"

# ---- Per-image byte limits (None disables gateway compression) ----
OPENAI_MAX_IMAGE_BYTES = 20 * MB
GEMINI_MAX_IMAGE_BYTES = 20 * MB
ANTHROPIC_MAX_IMAGE_BYTES = 5 * MB
OLLAMA_MAX_IMAGE_BYTES = None

# ---- Completions backend ----
OPENAI_MAX_TOKENS = 8000

# ---- Generative backend (fixed generation parameters) ----
GEMINI_GENERATION_CONFIG = {
    "temperature": 0.4,
    "top_p": 0.95,
    "top_k": 40,
    "max_output_tokens": 8192,
}
GEMINI_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)
GEMINI_SAFETY_THRESHOLD = "BLOCK_NONE"
# Listed models must name the family and accept image input.
GEMINI_MODEL_NAME_HINT = "gemini"
GEMINI_NON_VISION_HINTS = ("embedding", "aqa", "tts", "imagen")

# ---- Messages backend ----
ANTHROPIC_MAX_TOKENS_CAP = 4096
ANTHROPIC_TEMPERATURE = 0.7
# model -> context window reported for the catalogue
ANTHROPIC_MODEL_CATALOGUE = {
    "claude-sonnet-4-5": {"name": "Claude Sonnet 4.5", "max_tokens": 200000},
    "claude-opus-4-1": {"name": "Claude Opus 4.1", "max_tokens": 200000},
    "claude-haiku-4-5": {"name": "Claude Haiku 4.5", "max_tokens": 200000},
}

# ---- Local backend ----
# Model name fragments that only handle images reliably through /api/generate.
OLLAMA_GENERATE_ONLY_FAMILIES = ("deepseek-r1",)
# Name fragments suggested first when a requested model is missing.
OLLAMA_VISION_HINTS = ("llava", "bakllava", "moondream", "deepseek")
OLLAMA_VISION_FAMILIES = ("clip", "mllama", "llava")
OLLAMA_MAX_SUGGESTIONS = 5

# ---- CLI ----
PROVIDER_CLI_DEFAULT_PROVIDER = "ollama"


__all__ = [
    "MB",
    "OPENAI_DEFAULT_MODEL",
    "GEMINI_DEFAULT_MODEL",
    "ANTHROPIC_DEFAULT_MODEL",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_DEFAULT_HOST",
    "OPENAI_MAX_IMAGE_BYTES",
    "GEMINI_MAX_IMAGE_BYTES",
    "ANTHROPIC_MAX_IMAGE_BYTES",
    "OLLAMA_MAX_IMAGE_BYTES",
    "OPENAI_MAX_TOKENS",
    "GEMINI_GENERATION_CONFIG",
    "GEMINI_SAFETY_CATEGORIES",
    "GEMINI_SAFETY_THRESHOLD",
    "GEMINI_MODEL_NAME_HINT",
    "GEMINI_NON_VISION_HINTS",
    "ANTHROPIC_MAX_TOKENS_CAP",
    "ANTHROPIC_TEMPERATURE",
    "ANTHROPIC_MODEL_CATALOGUE",
    "OLLAMA_GENERATE_ONLY_FAMILIES",
    "OLLAMA_VISION_HINTS",
    "OLLAMA_VISION_FAMILIES",
    "OLLAMA_MAX_SUGGESTIONS",
    "PROVIDER_CLI_DEFAULT_PROVIDER",
]

"""Pure helpers shared by adapters."""

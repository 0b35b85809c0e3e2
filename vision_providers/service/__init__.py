"""Thin presentation layer over the gateway (command-line interface)."""

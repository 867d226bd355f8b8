"""Adapters for the external companion commands."""

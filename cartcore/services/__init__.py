"""Shared services used by the cart engine."""

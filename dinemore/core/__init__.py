"""
Core helpers package for the DineMore companion.

This package holds the low-level pieces every flow builds on:
settings, the error taxonomy, client-local storage with its key
builders and the session store that turns the persisted identity into
request headers.
"""

__all__ = []

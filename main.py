"""
Root application entry point for the DineMore companion
======================================================

This module exposes the FastAPI application instance defined in
``dinemore/main.py`` so that deployment tools like Uvicorn can import
``main:app`` directly.

Usage
-----

.. code-block:: bash

    uvicorn main:app --host 0.0.0.0 --port 8000
"""

from dinemore.main import app  # noqa: F401 re-export for Uvicorn

__all__ = ["app"]

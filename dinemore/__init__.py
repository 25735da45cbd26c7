"""
dinemore package
----------------

Companion service and client for the DineMore restaurant-loyalty API.
Importing :mod:`dinemore.main` builds the FastAPI ``app`` for ASGI
servers; the session store, API client and branch selection context
can also be used directly as a library.
"""

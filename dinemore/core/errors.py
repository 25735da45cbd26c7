"""
core/errors.py
--------------

Exception taxonomy for the DineMore companion.

Services raise these exceptions; the FastAPI application maps each
class to an HTTP status in :mod:`dinemore.main`. Nothing in this
package retries on failure, so every error is reported upward exactly
once.
"""

from __future__ import annotations


class DineMoreError(Exception):
    """Base class for all companion errors."""

    status_code = 500


class MissingFieldError(DineMoreError):
    """A required input was empty; raised before any network call."""

    status_code = 422

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class RoleMismatchError(DineMoreError):
    """The authenticated account does not belong to the requested portal."""

    status_code = 403


class ApiError(DineMoreError):
    """Non-2xx answer from the DineMore API.

    The message is always ``"<status>: <body>"``, falling back to the
    reason phrase when the body is empty.  ``status_code`` repeats the
    upstream 4xx or 5xx status; anything else (an unfollowed redirect,
    say) is answered as 502.
    """

    def __init__(self, status: int, text: str) -> None:
        super().__init__(f"{status}: {text}")
        self.status = status
        self.status_code = status if 400 <= status < 600 else 502
        self.text = text


class BranchContextError(DineMoreError):
    """Branch selection was read without a bound restaurant."""

    status_code = 409

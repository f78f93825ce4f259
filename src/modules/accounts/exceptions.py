"""Account domain exceptions.

Raised by the Service Layer; the API layer translates them into HTTP
responses.
"""

from __future__ import annotations


class AccountAlreadyExists(Exception):
    """An account is already registered with this e-mail address."""

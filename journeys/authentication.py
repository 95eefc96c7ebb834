"""
Custom authentication backend for token-based auth.

Kept in its own module so that Django REST framework can import the
authentication class during initialisation without pulling in any view
modules.
"""
from __future__ import annotations

from rest_framework import authentication


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword.

    Listed first in ``DEFAULT_AUTHENTICATION_CLASSES`` so that anonymous
    callers get a 401 with a ``WWW-Authenticate: Token`` header.
    """

    keyword = 'Token'

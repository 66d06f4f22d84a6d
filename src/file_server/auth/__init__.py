"""
Auth Module
===========

Upload authentication backends.

Components:
    - Authenticator: Protocol every backend implements
    - MockAuthenticator: Deterministic, in-process decisions
    - HttpAuthenticator: External attachment service (production)

The session only ever sees the Authenticator protocol, so backends are
swapped through configuration (auth.backend: "http" or "mock").
"""

from file_server.auth.authenticator import Authenticator, MockAuthenticator
from file_server.auth.http_authenticator import HttpAuthenticator

__all__ = [
    "Authenticator",
    "MockAuthenticator",
    "HttpAuthenticator",
]

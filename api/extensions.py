"""
Accessors for the per-app collaborators built in create_app().

The storage, token issuer, session registry and rate limiters are created
once per application and kept in app.extensions; request code reaches them
through these helpers instead of importing module-level singletons.
"""
from flask import current_app

STORAGE = "storage"
TOKEN_ISSUER = "token_issuer"
SESSION_REGISTRY = "session_registry"
RATE_LIMITERS = "rate_limiters"


def get_storage():
    return current_app.extensions[STORAGE]


def get_token_issuer():
    return current_app.extensions[TOKEN_ISSUER]


def get_session_registry():
    return current_app.extensions[SESSION_REGISTRY]


def get_rate_limiter(name: str):
    return current_app.extensions[RATE_LIMITERS][name]

"""
Accessors for the per-application services built in create_app().
Views call these instead of importing a module-level storage object.
"""
from __future__ import annotations

from flask import current_app

from models.credential_store import CredentialStore
from models.db_storage import DBStorage


def get_storage() -> DBStorage:
    return current_app.extensions["storage"]


def get_credential_store() -> CredentialStore:
    return current_app.extensions["credential_store"]

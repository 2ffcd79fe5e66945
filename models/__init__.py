"""
Persistence layer. The application factory builds one DBStorage per app;
nothing here holds a module-level session.
"""
from models.db_storage import DBStorage
from models.credential_store import CredentialStore

__all__ = ["DBStorage", "CredentialStore"]

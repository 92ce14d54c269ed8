"""Shared API dependencies, imported by every router from one place::

    from stayhub.api.deps import get_db, get_current_user, get_storage
"""

from stayhub.auth.dependencies import get_current_user
from stayhub.database import get_db
from stayhub.storage import get_storage

__all__ = [
    "get_db",
    "get_current_user",
    "get_storage",
]

"""
Abstract base class for session persistence.

The tracker only ever calls insert(); the other operations exist for
callers that browse or prune history. Implementations raise StorageError
(or let OS errors through); nothing in activity_tracker retries.
"""

from abc import ABC, abstractmethod


class SessionStore(ABC):
    """
    All subclasses must implement:
    - insert(session) -> int        assigns and returns a new id
    - get_by_id(session_id) -> Session or None
    - delete(session)               no-op if the session is not stored
    - delete_all()
    """

    @abstractmethod
    def insert(self, session):
        pass

    @abstractmethod
    def get_by_id(self, session_id):
        pass

    @abstractmethod
    def delete(self, session):
        pass

    @abstractmethod
    def delete_all(self):
        pass

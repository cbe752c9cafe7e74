"""
In-process session store.
"""

import copy
import itertools
import threading

from .base import SessionStore


class InMemorySessionStore(SessionStore):
    """Thread-safe dict of deep-copied sessions keyed by id."""

    def __init__(self):
        self._sessions = {}
        self._ids = itertools.count(1)
        self.lock = threading.Lock()

    def insert(self, session):
        with self.lock:
            session_id = next(self._ids)
            stored = copy.deepcopy(session)
            stored.id = session_id
            self._sessions[session_id] = stored
            return session_id

    def get_by_id(self, session_id):
        with self.lock:
            stored = self._sessions.get(session_id)
            return copy.deepcopy(stored) if stored is not None else None

    def delete(self, session):
        with self.lock:
            self._sessions.pop(session.id, None)

    def delete_all(self):
        with self.lock:
            self._sessions.clear()

    def __len__(self):
        with self.lock:
            return len(self._sessions)

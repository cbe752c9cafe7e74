"""
File-backed session store.

One gzip-compressed JSON document per session (session_<id>.json.gz) in a
single directory. Writes go to a .tmp file first and are renamed into place
so a crash never leaves a half-written session behind.
"""

import base64
import gzip
import os
import re
import threading
from pathlib import Path

import orjson

from .. import route_codec
from ..errors import RouteDecodeError, StorageError
from ..models import InputMode, Session
from .base import SessionStore

_FILENAME = re.compile(r"^session_(\d+)\.json\.gz$")


def session_to_dict(session):
    payload = session.route_payload
    return {
        'version': 1,
        'id': session.id,
        'mode': int(session.mode),
        'activity': session.activity,
        'start_time_ms': session.start_time_ms,
        'duration_s': session.duration_s,
        'distance_m': session.distance_m,
        'avg_speed_mps': session.avg_speed_mps,
        'avg_pace_s_per_m': session.avg_pace_s_per_m,
        'climb_m': session.climb_m,
        'calories_kcal': session.calories_kcal,
        # None means the session never tracked location; any base64 string is a payload (even an empty route)
        'route': base64.b64encode(payload).decode('ascii') if payload is not None else None,
    }


def session_from_dict(data):
    encoded = data.get('route')
    payload = base64.b64decode(encoded) if encoded is not None else None
    try:
        route = route_codec.decode(payload) if payload else []
    except RouteDecodeError as e:
        raise StorageError(f"Corrupt route in session {data.get('id')}: {e}") from e
    return Session(
        id=data['id'],
        mode=InputMode(data['mode']),
        activity=data['activity'],
        start_time_ms=data['start_time_ms'],
        duration_s=data['duration_s'],
        distance_m=data['distance_m'],
        avg_speed_mps=data['avg_speed_mps'],
        avg_pace_s_per_m=data['avg_pace_s_per_m'],
        climb_m=data['climb_m'],
        calories_kcal=data['calories_kcal'],
        route=route,
        route_payload=payload,
    )


class JsonSessionStore(SessionStore):
    def __init__(self, directory):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.lock = threading.Lock()

    def _path(self, session_id):
        return self.directory / f"session_{session_id}.json.gz"

    def _ids(self):
        ids = []
        for entry in self.directory.iterdir():
            match = _FILENAME.match(entry.name)
            if match:
                ids.append(int(match.group(1)))
        return ids

    def insert(self, session):
        with self.lock:
            session_id = max(self._ids(), default=0) + 1
            data = session_to_dict(session)
            data['id'] = session_id

            path = self._path(session_id)
            temp_path = path.with_name(path.name + ".tmp")
            with gzip.open(temp_path, 'wb') as f:
                f.write(orjson.dumps(data))
            os.replace(temp_path, path)
            return session_id

    def get_by_id(self, session_id):
        path = self._path(session_id)
        with self.lock:
            if not path.exists():
                return None
            with gzip.open(path, 'rb') as f:
                raw = f.read()
        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise StorageError(f"Corrupt session file {path}: {e}") from e
        return session_from_dict(data)

    def delete(self, session):
        if session.id is None:
            return
        with self.lock:
            self._path(session.id).unlink(missing_ok=True)

    def delete_all(self):
        with self.lock:
            for session_id in self._ids():
                self._path(session_id).unlink(missing_ok=True)

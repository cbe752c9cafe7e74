"""
Pluggable session persistence.

Example usage:
    store = get_store('memory')
    store = get_store('json', directory='sessions/')

    session_id = store.insert(session)
    session = store.get_by_id(session_id)
"""

from .base import SessionStore


def get_store(store_type='memory', **kwargs):
    """
    Factory function to get a session store by name.

    Args:
        store_type (str): 'memory' (process lifetime) or 'json' (gzip files, needs directory=)
        **kwargs: Passed to the store constructor

    Raises:
        ValueError: If store_type is not recognized
    """
    if store_type == 'memory':
        from .memory import InMemorySessionStore
        return InMemorySessionStore(**kwargs)
    elif store_type == 'json':
        from .json_store import JsonSessionStore
        return JsonSessionStore(**kwargs)
    else:
        raise ValueError(f"Unknown store type: {store_type}. Use 'memory' or 'json'")


__all__ = ['SessionStore', 'get_store']

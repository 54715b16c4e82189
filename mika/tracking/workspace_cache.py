"""Landing page -> workspace lookup cache.

A landing page's workspace assignment does not change once created, so the
only staleness risk is a deleted or re-homed page; entries expire after
``ttl`` seconds and ``invalidate`` drops one eagerly.
"""
import threading
import time
from collections import OrderedDict

from flask import current_app

from mika.extensions import db
from mika.models.tenancy import LandingPage

EXTENSION_KEY = "mika.workspace_cache"


class WorkspaceCache:
    def __init__(self, ttl=300, max_size=1024, clock=time.monotonic):
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries = OrderedDict()
        self._lock = threading.Lock()

    def get(self, landing_page_id):
        """Return the workspace id owning the landing page, or None if unknown."""
        if not landing_page_id:
            return None

        now = self._clock()
        with self._lock:
            entry = self._entries.get(landing_page_id)
            if entry is not None:
                workspace_id, expires_at = entry
                if expires_at > now:
                    self._entries.move_to_end(landing_page_id)
                    return workspace_id
                del self._entries[landing_page_id]

        workspace_id = db.session.execute(
            db.select(LandingPage.workspace_id).where(LandingPage.id == landing_page_id)
        ).scalar_one_or_none()
        if workspace_id is None:
            return None

        with self._lock:
            self._entries[landing_page_id] = (workspace_id, now + self.ttl)
            self._entries.move_to_end(landing_page_id)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return workspace_id

    def invalidate(self, landing_page_id):
        with self._lock:
            self._entries.pop(landing_page_id, None)

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        with self._lock:
            return len(self._entries)


def init_workspace_cache(app):
    cache = WorkspaceCache(
        ttl=app.config.get("WORKSPACE_CACHE_TTL", 300),
        max_size=app.config.get("WORKSPACE_CACHE_SIZE", 1024),
    )
    app.extensions[EXTENSION_KEY] = cache
    return cache


def get_workspace_cache():
    return current_app.extensions[EXTENSION_KEY]


def owned_landing_page(workspace_id, landing_page_id):
    """Return the landing page id when it belongs to the workspace, else None."""
    if landing_page_id and get_workspace_cache().get(landing_page_id) == workspace_id:
        return landing_page_id
    return None

"""
View cache for admin listings, keyed by navigational path.
A mutation marks its path stale; the next read of that path refetches.
Lives per Lambda container, so a cold start begins empty.
"""
import logging
import threading

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

PAGE = "page"
LAYOUT = "layout"


def _normalizePath(path):
    path = "/" + str(path or "").strip().strip("/")
    return path


class ViewCache:
    """Rendered listings per path with a staleness flag."""

    def __init__(self):
        self._entries = {}
        self._generation = 0
        self._lock = threading.Lock()

    def get(self, path):
        """Return the cached value, or None when missing or stale."""
        with self._lock:
            entry = self._entries.get(_normalizePath(path))
            if entry is None or entry["stale"]:
                return None
            return entry["value"]

    def generation(self):
        """Counter bumped by every invalidation. Read it before fetching what you will put."""
        with self._lock:
            return self._generation

    def put(self, path, value, generation=None):
        """
        Cache value as fresh. When generation is given and an invalidation has
        happened since it was read, the value is dropped and False is returned.
        """
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            self._entries[_normalizePath(path)] = {"value": value, "stale": False}
            return True

    def isStale(self, path):
        """True when the path has been invalidated since it was last cached."""
        with self._lock:
            entry = self._entries.get(_normalizePath(path))
            return bool(entry and entry["stale"])

    def invalidate(self, path, kind=PAGE):
        """Mark path stale. kind=layout also marks every cached path beneath it."""
        path = _normalizePath(path)
        prefix = path.rstrip("/") + "/"
        with self._lock:
            self._generation += 1
            entry = self._entries.setdefault(path, {"value": None, "stale": True})
            entry["stale"] = True
            marked = 1
            if kind == LAYOUT:
                for key, other in self._entries.items():
                    if key != path and (path == "/" or key.startswith(prefix)):
                        other["stale"] = True
                        marked += 1
        logger.info("revalidated path=%s kind=%s entries=%s", path, kind, marked)

    def clear(self):
        with self._lock:
            self._entries.clear()


VIEW_CACHE = ViewCache()


def revalidatePath(path, kind=PAGE):
    """Mark path stale in the process-wide view cache."""
    VIEW_CACHE.invalidate(path, kind)

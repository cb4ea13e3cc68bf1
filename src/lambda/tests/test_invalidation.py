"""Unit tests for the view cache."""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def test_put_then_get():
    from api.invalidation import ViewCache
    cache = ViewCache()
    cache.put("/admin/roles", [{"id": "r1"}])
    assert cache.get("/admin/roles") == [{"id": "r1"}]
    assert cache.get("admin/roles/") == [{"id": "r1"}]


def test_invalidate_page_only_touches_path():
    from api.invalidation import ViewCache
    cache = ViewCache()
    cache.put("/admin/roles", [])
    cache.put("/admin/roles/archived", [])
    cache.invalidate("/admin/roles")
    assert cache.get("/admin/roles") is None
    assert cache.isStale("/admin/roles")
    assert cache.get("/admin/roles/archived") == []


def test_invalidate_layout_marks_subtree():
    from api.invalidation import LAYOUT, ViewCache
    cache = ViewCache()
    cache.put("/admin/settings/system", {})
    cache.put("/admin/settings/organizations", {})
    cache.put("/admin/roles", [])
    cache.invalidate("/admin/settings", LAYOUT)
    assert cache.get("/admin/settings/system") is None
    assert cache.get("/admin/settings/organizations") is None
    assert cache.get("/admin/roles") == []


def test_invalidate_root_layout_marks_everything():
    from api.invalidation import LAYOUT, ViewCache
    cache = ViewCache()
    cache.put("/admin/roles", [])
    cache.invalidate("/", LAYOUT)
    assert cache.get("/admin/roles") is None


def test_put_after_invalidate_is_fresh():
    from api.invalidation import ViewCache
    cache = ViewCache()
    cache.invalidate("/admin/files")
    cache.put("/admin/files", [1])
    assert not cache.isStale("/admin/files")
    assert cache.get("/admin/files") == [1]


def test_put_skipped_when_invalidated_during_fetch():
    from api.invalidation import ViewCache
    cache = ViewCache()
    generation = cache.generation()
    cache.invalidate("/admin/roles")
    assert cache.put("/admin/roles", [{"id": "old"}], generation) is False
    assert cache.get("/admin/roles") is None
    assert cache.put("/admin/roles", [{"id": "new"}], cache.generation()) is True
    assert cache.get("/admin/roles") == [{"id": "new"}]

from mika.extensions import db
from mika.models import LandingPage
from mika.tracking.workspace_cache import WorkspaceCache, get_workspace_cache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_cache_is_installed_on_app(app):
    cache = get_workspace_cache()

    assert cache.ttl == app.config["WORKSPACE_CACHE_TTL"]
    assert cache.max_size == app.config["WORKSPACE_CACHE_SIZE"]


def test_lookup_hits_cache_until_ttl(app, workspace, other_workspace):
    clock = FakeClock()
    cache = WorkspaceCache(ttl=60, clock=clock)

    assert cache.get("lp1") == "ws1"

    # Re-home the page behind the cache's back; the cached entry still wins.
    db.session.get(LandingPage, "lp1").workspace_id = "ws2"
    db.session.commit()
    assert cache.get("lp1") == "ws1"

    clock.now += 61
    assert cache.get("lp1") == "ws2"


def test_invalidate_forces_reload(app, workspace, other_workspace):
    cache = WorkspaceCache(ttl=60, clock=FakeClock())
    cache.get("lp1")
    db.session.get(LandingPage, "lp1").workspace_id = "ws2"
    db.session.commit()

    cache.invalidate("lp1")

    assert cache.get("lp1") == "ws2"


def test_unknown_pages_are_not_cached(app, workspace):
    cache = WorkspaceCache()

    assert cache.get("missing") is None
    assert cache.get(None) is None
    assert len(cache) == 0


def test_size_is_bounded(app, workspace):
    for index in range(3):
        db.session.add(LandingPage(id=f"extra{index}", workspace_id="ws1", name="P", slug=f"p{index}"))
    db.session.commit()
    cache = WorkspaceCache(max_size=2)

    for page_id in ("lp1", "extra0", "extra1", "extra2"):
        cache.get(page_id)

    assert len(cache) == 2
    cache.clear()
    assert len(cache) == 0

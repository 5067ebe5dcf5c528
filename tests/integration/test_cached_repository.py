"""CachedRepository: what is cached, when it is used and when it is forgotten."""

from typing import Any

from cachedrepo.infrastructure.cache.memory_cache import MemoryCacheStore
from cachedrepo.infrastructure.cache.request_memo import RequestMemoCache
from tests.models import Post
from tests.repositories import CachedPostRepository, PostRepository, RecordingListener


def _post_data(post_id: int, text: str, views: int = 0) -> dict[str, Any]:
    return {"id": post_id, "text": text, "views": views, "comment_count": 0}


class UnavailableStore(MemoryCacheStore):
    def is_available(self) -> bool:
        return False


class NoFieldCacheRepository(CachedPostRepository):
    def field_cache_key(self, field: str, value: Any) -> str | None:
        return None


async def test_entity_type_and_keys(cached_post_repo) -> None:
    assert cached_post_repo.entity_type == "Post"
    assert cached_post_repo.cache_key(1) == "post:1"
    assert cached_post_repo.field_cache_key("text", "x").startswith("post-text-id:")


async def test_find_stores_entity_in_cache(cached_post_repo, cache) -> None:
    assert await cache.get("post:1") is None
    await cached_post_repo.find(1)
    assert await cache.get("post:1") == _post_data(1, "Model 1")


async def test_find_stores_negative_marker(cached_post_repo, cache) -> None:
    assert await cached_post_repo.find(456) is None
    assert await cache.get("post:456") is False


async def test_find_uses_cached_entity_without_query(cached_post_repo, cache, query_log) -> None:
    await cache.set_forever("post:123", _post_data(123, "Cached Hello World"))
    post = await cached_post_repo.find(123)
    assert isinstance(post, Post)
    assert post.text == "Cached Hello World"
    assert len(query_log) == 0


async def test_negative_marker_is_idempotent(cached_post_repo, cache, query_log) -> None:
    """Repeated misses query once; clearing the marker queries again."""
    assert await cached_post_repo.find(999) is None
    assert await cached_post_repo.find(999) is None
    assert await cached_post_repo.find(999) is None
    assert len(query_log.selects) == 1
    assert await cache.get("post:999") is False
    await cache.delete("post:999")
    assert await cached_post_repo.find(999) is None
    assert len(query_log.selects) == 2


async def test_find_uses_cached_negative_marker(cached_post_repo, cache) -> None:
    """A marker hides an existing row until it is forgotten."""
    await cache.set_forever("post:2", False)
    assert await cached_post_repo.find(2) is None
    await cached_post_repo.forget_by_id(2)
    assert (await cached_post_repo.find(2)).id == 2


async def test_persist_refreshes_cache(cached_post_repo, cache, query_log) -> None:
    """After persist, find serves the saved state from the cache."""
    post = Post(text="A")
    await cached_post_repo.persist(post)
    post.text = "B"
    await cached_post_repo.persist(post)
    query_log.clear()
    found = await cached_post_repo.find(post.id)
    assert found.text == "B"
    assert len(query_log) == 0
    assert (await cache.get(cached_post_repo.cache_key(post.id)))["text"] == "B"


async def test_persist_overwrites_negative_marker(cached_post_repo, cache) -> None:
    assert await cached_post_repo.find(10) is None
    await cached_post_repo.persist(Post(id=10, text="Late arrival"))
    assert (await cached_post_repo.find(10)).text == "Late arrival"


async def test_vetoed_persist_leaves_cache_untouched(db_session, cache) -> None:
    repo = CachedPostRepository(
        PostRepository(db_session, listeners=[RecordingListener(allow_insert=False)]), cache
    )
    post = Post(text="Uncreatable")
    assert await repo.persist(post) is False
    assert post.id is None
    assert len(cache) == 0


async def test_remove_forgets_entity(cached_post_repo, cache) -> None:
    post = Post(text="Short lived")
    await cached_post_repo.persist(post)
    key = cached_post_repo.cache_key(post.id)
    assert await cache.get(key) is not None
    await cached_post_repo.remove(post)
    assert await cache.get(key) is None
    assert await cached_post_repo.find(post.id) is None


async def test_remove_forgets_field_keys(cached_post_repo, cache) -> None:
    """forget_field_keys (overridden here) runs on remove."""
    post = await cached_post_repo.find_one_by("text", "Model 2")
    key = cached_post_repo.field_cache_key("text", "Model 2")
    assert await cache.get(key) == 2
    await cached_post_repo.remove(post)
    assert await cache.get(key) is None
    assert await cached_post_repo.find_one_by("text", "Model 2") is None


async def test_find_one_by_caches_primary_key(cached_post_repo, cache) -> None:
    """The field key holds only the id; the entity lives under its own key."""
    post = await cached_post_repo.find_one_by("text", "Model 2")
    assert post.id == 2
    assert await cache.get(cached_post_repo.field_cache_key("text", "Model 2")) == 2
    assert await cache.get("post:2") == _post_data(2, "Model 2")


async def test_find_one_by_uses_cached_primary_key(cached_post_repo, cache) -> None:
    """A cached id is trusted: no fallback to the field query."""
    await cache.set_forever(cached_post_repo.field_cache_key("text", "Model 2"), 400)
    assert await cached_post_repo.find_one_by("text", "Model 2") is None


async def test_second_find_one_by_does_not_query(cached_post_repo, query_log) -> None:
    await cached_post_repo.find_one_by("text", "Model 2")
    query_log.clear()
    post = await cached_post_repo.find_one_by("text", "Model 2")
    assert post.id == 2
    assert len(query_log) == 0


async def test_find_one_by_miss_is_not_cached(cached_post_repo, cache) -> None:
    """A field miss stays uncached so a later insert is found."""
    assert await cached_post_repo.find_one_by("text", "Coming soon") is None
    assert len(cache) == 0
    await cached_post_repo.persist(Post(text="Coming soon"))
    assert (await cached_post_repo.find_one_by("text", "Coming soon")).text == "Coming soon"


async def test_find_one_by_honours_negative_field_marker(cached_post_repo, cache) -> None:
    await cache.set_forever(cached_post_repo.field_cache_key("text", "Model 1"), False)
    assert await cached_post_repo.find_one_by("text", "Model 1") is None


async def test_field_caching_can_be_disabled(db_session, cache, query_log) -> None:
    repo = NoFieldCacheRepository(PostRepository(db_session), cache)
    await repo.find_one_by("text", "Model 2")
    await repo.find_one_by("text", "Model 2")
    assert len(query_log.selects) == 2
    assert len(cache) == 1
    assert "post:2" in cache


async def test_find_many_stores_results(cached_post_repo, cache, query_log) -> None:
    posts = await cached_post_repo.find_many([1, 2, 500])
    assert sorted(p.id for p in posts) == [1, 2]
    assert await cache.get("post:1") == _post_data(1, "Model 1")
    assert await cache.get("post:2") == _post_data(2, "Model 2")
    assert await cache.get("post:500") is False
    query_log.clear()
    again = await cached_post_repo.find_many([1, 2, 500])
    assert sorted(p.id for p in again) == [1, 2]
    assert len(query_log) == 0


async def test_find_many_uses_cached_entities(cached_post_repo, cache) -> None:
    await cache.set_forever("post:500", _post_data(500, "Cached"))
    posts = await cached_post_repo.find_many([1, 2, 500])
    assert sorted(p.id for p in posts) == [1, 2, 500]


async def test_find_many_uses_cached_negative_marker(cached_post_repo, cache) -> None:
    await cache.set_forever("post:1", False)
    posts = await cached_post_repo.find_many([1, 2])
    assert [p.id for p in posts] == [2]


async def test_find_many_loads_only_uncached_ids(cached_post_repo, query_log) -> None:
    await cached_post_repo.find(1)
    query_log.clear()
    posts = await cached_post_repo.find_many([1, 2])
    assert sorted(p.id for p in posts) == [1, 2]
    assert len(query_log.selects) == 1


async def test_increment_refreshes_cache(cached_post_repo, cache) -> None:
    post = await cached_post_repo.find(1)
    await cached_post_repo.increment_or_decrement(post, "views", 3)
    assert (await cache.get("post:1"))["views"] == 3


async def test_atomic_increments_from_stale_copy(cached_post_repo, cache) -> None:
    stale = Post(id=1, text="Model 1", views=100)
    for _ in range(5):
        await cached_post_repo.increment_or_decrement(stale, "views", 1)
    assert (await cache.get("post:1"))["views"] == 5


async def test_remember_and_forget(cached_post_repo, cache) -> None:
    post = await cached_post_repo.repository.find(2)
    await cached_post_repo.remember(post)
    assert "post:2" in cache
    assert await cached_post_repo.forget_by_entity(post) is True
    assert "post:2" not in cache


async def test_refresh_by_id_caches_current_row(cached_post_repo, cache) -> None:
    await cache.set_forever("post:1", _post_data(1, "Stale"))
    post = await cached_post_repo.refresh_by_id(1)
    assert post.text == "Model 1"
    assert (await cache.get("post:1"))["text"] == "Model 1"
    assert await cached_post_repo.refresh_by_id(77) is None
    assert await cache.get("post:77") is False


async def test_unavailable_cache_falls_through(db_session) -> None:
    store = UnavailableStore()
    repo = CachedPostRepository(PostRepository(db_session), store)
    assert (await repo.find(1)).text == "Model 1"
    assert (await repo.find_one_by("text", "Model 2")).id == 2
    assert sorted(p.id for p in await repo.find_many([1, 2])) == [1, 2]
    assert len(store) == 0


async def test_request_memo_in_front_of_store(db_session, cache, query_log) -> None:
    repo = CachedPostRepository(PostRepository(db_session), RequestMemoCache(cache))
    await repo.find(1)
    query_log.clear()
    assert (await repo.find(1)).text == "Model 1"
    assert len(query_log) == 0
    assert "post:1" in cache


async def test_all_is_not_cached(cached_post_repo, cache) -> None:
    assert len(await cached_post_repo.all()) == 2
    assert len(cache) == 0


async def test_cache_hit_keeps_unsaved_edits(cached_post_repo, query_log) -> None:
    post = await cached_post_repo.find(1)
    post.text = "unsaved edit"
    query_log.clear()
    again = await cached_post_repo.find(1)
    assert again is post
    assert again.text == "unsaved edit"
    assert len(query_log) == 0


async def test_cache_hit_fills_expired_instance(cached_post_repo, db_session, query_log) -> None:
    """Expired attributes are filled from the cache instead of reloading."""
    post = await cached_post_repo.find(1)
    db_session.expire(post)
    query_log.clear()
    again = await cached_post_repo.find(1)
    assert again is post
    assert again.text == "Model 1"
    assert again.views == 0
    assert len(query_log) == 0

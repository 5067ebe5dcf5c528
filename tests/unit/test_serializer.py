"""Tests for EntitySerializer."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import inspect as sa_inspect

from cachedrepo.infrastructure.cache.serializer import EntitySerializer
from tests.models import Comment, Post, Product


def test_to_cache_dumps_every_column() -> None:
    post = Post(id=1, text="Model 1", views=3, comment_count=0)
    assert EntitySerializer().to_cache(post) == {
        "id": 1,
        "text": "Model 1",
        "views": 3,
        "comment_count": 0,
    }


def test_datetimes_roundtrip_as_iso_text() -> None:
    serializer = EntitySerializer()
    comment = Comment(id=3, text="Model 3", post_id=None, deleted_at=datetime(2000, 1, 1))
    data = serializer.to_cache(comment)
    assert data["deleted_at"] == "2000-01-01T00:00:00"
    restored = serializer.from_cache(Comment, data)
    assert restored.deleted_at == datetime(2000, 1, 1)


def test_uuid_decimal_and_date_roundtrip() -> None:
    serializer = EntitySerializer()
    sku = uuid.uuid4()
    product = Product(id=1, sku=sku, price=Decimal("9.99"), released_on=date(2024, 5, 1))
    data = serializer.to_cache(product)
    assert data["sku"] == str(sku)
    assert data["price"] == "9.99"
    assert data["released_on"] == "2024-05-01"
    restored = serializer.from_cache(Product, data)
    assert restored.sku == sku
    assert restored.price == Decimal("9.99")
    assert restored.released_on == date(2024, 5, 1)


def test_from_cache_ignores_unknown_keys() -> None:
    """Keys that are no longer columns (e.g. after a schema change) are skipped."""
    post = EntitySerializer().from_cache(Post, {"id": 2, "text": "x", "legacy": 1})
    assert post.id == 2
    assert not hasattr(post, "legacy")


def test_from_cache_returns_transient_instance() -> None:
    post = EntitySerializer().from_cache(Post, {"id": 2, "text": "x"})
    assert sa_inspect(post).transient

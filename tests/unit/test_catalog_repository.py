"""Unit tests for catalog document storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from storefront.backend.app.services.catalog_repository import (
    InMemoryDocumentRepository,
    SQLiteDocumentRepository,
)


class TickingClock:
    def __init__(self) -> None:
        self.current = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


@pytest.fixture(params=["memory", "sqlite"])
def repository(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemoryDocumentRepository(clock=TickingClock())
    return SQLiteDocumentRepository(tmp_path / "catalog.db", clock=TickingClock())


def test_insert_and_filter(repository) -> None:
    shown, hidden = repository.insert_many(
        "coupons", [{"coupon_code": "A", "status": "show"}, {"coupon_code": "B", "status": "hide"}]
    )

    assert repository.get("coupons", shown.id).get("coupon_code") == "A"
    assert [document.id for document in repository.list("coupons", where={"status": "show"})] == [
        shown.id
    ]
    assert repository.list("extras") == []
    with pytest.raises(KeyError):
        repository.get("extras", hidden.id)


def test_list_is_newest_first(repository) -> None:
    (first,) = repository.insert_many("coupons", [{"coupon_code": "A"}])
    (second,) = repository.insert_many("coupons", [{"coupon_code": "B"}])

    assert [document.id for document in repository.list("coupons")] == [second.id, first.id]


def test_replace_and_delete(repository) -> None:
    (document,) = repository.insert_many("extras", [{"title": {"en": "Wrap"}}])

    replaced = repository.replace("extras", document.id, {"title": {"en": "Ribbon"}})

    assert replaced.created_at == document.created_at
    assert replaced.updated_at > document.updated_at
    assert repository.get("extras", document.id).get("title") == {"en": "Ribbon"}

    assert repository.delete("extras", document.id).id == document.id
    with pytest.raises(KeyError):
        repository.delete("extras", document.id)
    with pytest.raises(KeyError):
        repository.replace("extras", document.id, {})


def test_delete_many_counts_removed_documents(repository) -> None:
    documents = repository.insert_many("categories", [{"name": "A"}, {"name": "B"}])

    assert repository.delete_many("categories", [documents[0].id, "missing"]) == 1
    assert repository.delete_many("coupons", [documents[1].id]) == 0
    assert len(repository.list("categories")) == 1


def test_sqlite_round_trips_unicode(tmp_path: Path) -> None:
    path = tmp_path / "catalog.db"
    (document,) = SQLiteDocumentRepository(path).insert_many(
        "categories", [{"name": {"fr": "Épicerie"}}]
    )

    assert SQLiteDocumentRepository(path).get("categories", document.id).get("name") == {
        "fr": "Épicerie"
    }

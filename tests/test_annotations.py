"""Tests for the highlight store."""

from __future__ import annotations

import pytest

from quire.library.annotations import AnnotationStore
from quire.library.models import Book, Chapter


@pytest.fixture
def store() -> AnnotationStore:
    return AnnotationStore()


@pytest.fixture
def book() -> Book:
    chapters = [
        Chapter(id=f"ch{i}", title=f"Chapter {i + 1}", raw_content="<p>x</p>", path="", index=i)
        for i in range(3)
    ]
    return Book(id="book_1", filename="a.epub", chapters=chapters)


class TestCreate:
    def test_create_list_delete(self, store: AnnotationStore, book: Book):
        h = store.create(book, 0, 0, "selected words", "blue")
        assert h.color == "blue"
        assert h.book_id == "book_1"
        assert (h.chapter, h.page) == (0, 0)
        assert store.list_for(book) == [h]

        assert store.delete(book, h.id) is True
        assert store.list_for(book) == []

    def test_stored_on_book(self, store: AnnotationStore, book: Book):
        h = store.create(book, 1, 3, "text", "yellow")
        assert book.highlights[h.id] is h

    def test_ids_unique(self, store: AnnotationStore, book: Book):
        ids = {store.create(book, 0, 0, "t", "green").id for _ in range(200)}
        assert len(ids) == 200
        assert all(i.startswith("highlight_") for i in ids)

    def test_empty_text_rejected(self, store: AnnotationStore, book: Book):
        with pytest.raises(ValueError):
            store.create(book, 0, 0, "", "yellow")

    def test_unknown_color_rejected(self, store: AnnotationStore, book: Book):
        with pytest.raises(ValueError, match="Unknown highlight color"):
            store.create(book, 0, 0, "text", "purple")


class TestQueries:
    def test_delete_missing(self, store: AnnotationStore, book: Book):
        assert store.delete(book, "highlight_nope") is False

    def test_resolve(self, store: AnnotationStore, book: Book):
        h = store.create(book, 0, 0, "text", "yellow")
        assert store.resolve(book, h.id) is h
        assert store.resolve(book, "highlight_nope") is None

    def test_newest_first(self, store: AnnotationStore, book: Book):
        first = store.create(book, 0, 0, "first", "yellow")
        second = store.create(book, 0, 0, "second", "yellow")
        third = store.create(book, 0, 0, "third", "yellow")
        first.date_created, second.date_created, third.date_created = 300.0, 100.0, 200.0
        assert [h.text for h in store.list_for(book)] == ["first", "third", "second"]

    def test_same_instant_newest_inserted_first(self, store: AnnotationStore, book: Book):
        a = store.create(book, 0, 0, "a", "yellow")
        b = store.create(book, 0, 0, "b", "yellow")
        a.date_created = b.date_created = 100.0
        assert [h.text for h in store.list_for(book)] == ["b", "a"]

    def test_list_for_chapter(self, store: AnnotationStore, book: Book):
        store.create(book, 0, 0, "zero", "yellow")
        store.create(book, 2, 0, "two", "blue")
        assert [h.text for h in store.list_for_chapter(book, 2)] == ["two"]

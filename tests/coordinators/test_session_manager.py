#!/usr/bin/env python3
"""
Tests for SessionManager - validates tab bookkeeping, restore and persistence.
"""

import random
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication

from pdf_shelf.coordinators import SessionManager
from pdf_shelf.io import InMemoryKeyValueStore
from pdf_shelf.services import DocumentCache, SettingsManager

from tests.services.fakes import FakeRenderer


def ensure_qt_app():
    if QCoreApplication.instance() is None:
        QCoreApplication([])


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def settings(tmp_path, store):
    return SettingsManager(project_root=tmp_path, store=store)


@pytest.fixture
def session(store, settings):
    ensure_qt_app()
    manager = SessionManager(store=store, settings=settings)
    manager.initialize()
    yield manager
    manager.wait_for_pending_writes()


def assert_invariants(session):
    tabs = session.get_open_books()
    index = session.get_current_index()
    assert len(tabs) <= session.get_max_tabs()
    assert len(tabs) == len(set(tabs))
    assert set(tabs) <= set(session.get_all_books())
    if tabs:
        assert 0 <= index < len(tabs)
        assert session.get_current_book() == tabs[index]
    else:
        assert index == -1
        assert session.get_current_book() is None


def test_session_manager_fails_fast_on_none_store(settings):
    ensure_qt_app()
    with pytest.raises(ValueError, match="KeyValueStore must not be None"):
        SessionManager(store=None, settings=settings)


def test_session_manager_fails_fast_on_none_settings(store):
    ensure_qt_app()
    with pytest.raises(ValueError, match="SettingsManager must not be None"):
        SessionManager(store=store, settings=None)


def test_initial_state_is_empty(session):
    assert session.get_open_books() == []
    assert session.get_all_books() == []
    assert session.get_current_index() == -1
    assert session.get_current_book() is None
    assert session.get_max_tabs() == 10


class TestOpenBook:
    def test_open_appends_and_activates(self, session):
        assert session.open_book("a.pdf")
        assert session.open_book("b.pdf")

        assert session.get_open_books() == ["a.pdf", "b.pdf"]
        assert session.get_current_index() == 1
        assert session.get_current_book() == "b.pdf"

    def test_open_adds_unknown_book_to_catalog(self, session):
        session.open_book("new.pdf")

        assert session.get_all_books() == ["new.pdf"]

    def test_open_already_open_book_focuses_existing_tab(self, session):
        session.open_book("a.pdf")
        session.open_book("b.pdf")

        assert session.open_book("a.pdf")
        assert session.open_book("a.pdf")

        assert session.get_open_books() == ["a.pdf", "b.pdf"]
        assert session.get_current_index() == 0

    def test_eleventh_book_is_refused(self, session):
        for i in range(10):
            assert session.open_book(f"book{i}.pdf")

        assert session.open_book("book10.pdf") is False

        assert len(session.get_open_books()) == 10
        assert "book10.pdf" not in session.get_open_books()
        assert "book10.pdf" not in session.get_all_books()
        assert session.get_current_index() == 9

    def test_open_already_open_book_at_limit_still_focuses(self, session):
        for i in range(10):
            session.open_book(f"book{i}.pdf")

        assert session.open_book("book3.pdf") is True
        assert session.get_current_index() == 3

    def test_limit_message_names_the_cap(self, session):
        assert "10" in session.limit_message()


class TestCloseBook:
    def _open(self, session, *names):
        for name in names:
            session.open_book(name)

    def test_close_only_tab_resets_index(self, session):
        self._open(session, "a.pdf")

        session.close_book(0)

        assert session.get_open_books() == []
        assert session.get_current_index() == -1

    def test_close_active_middle_tab_keeps_index(self, session):
        self._open(session, "a.pdf", "b.pdf", "c.pdf")
        session.switch_to_book(1)

        session.close_book(1)

        assert session.get_open_books() == ["a.pdf", "c.pdf"]
        assert session.get_current_index() == 1
        assert session.get_current_book() == "c.pdf"

    def test_close_active_last_tab_moves_index_back(self, session):
        self._open(session, "a.pdf", "b.pdf", "c.pdf")

        session.close_book(2)

        assert session.get_current_index() == 1
        assert session.get_current_book() == "b.pdf"

    def test_close_tab_before_active_shifts_index(self, session):
        self._open(session, "a.pdf", "b.pdf", "c.pdf")

        session.close_book(0)

        assert session.get_current_index() == 1
        assert session.get_current_book() == "c.pdf"

    def test_close_tab_after_active_keeps_index(self, session):
        self._open(session, "a.pdf", "b.pdf", "c.pdf")
        session.switch_to_book(0)

        session.close_book(2)

        assert session.get_current_index() == 0
        assert session.get_current_book() == "a.pdf"

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_close_out_of_range_is_noop(self, session, index):
        self._open(session, "a.pdf", "b.pdf", "c.pdf")
        listener = MagicMock()
        session.changed.connect(listener)

        session.close_book(index)

        assert session.get_open_books() == ["a.pdf", "b.pdf", "c.pdf"]
        assert session.get_current_index() == 2
        listener.assert_not_called()

    def test_closed_book_stays_in_catalog(self, session):
        self._open(session, "a.pdf")
        session.close_book(0)

        assert session.get_all_books() == ["a.pdf"]


class TestSwitchToBook:
    def test_switch_sets_index(self, session):
        session.open_book("a.pdf")
        session.open_book("b.pdf")

        session.switch_to_book(0)

        assert session.get_current_book() == "a.pdf"

    @pytest.mark.parametrize("index", [-1, 2])
    def test_switch_out_of_range_is_noop(self, session, index):
        session.open_book("a.pdf")
        session.open_book("b.pdf")

        session.switch_to_book(index)

        assert session.get_current_index() == 1


class TestNotifications:
    def test_each_mutation_notifies_once(self, session):
        listener = MagicMock()
        session.changed.connect(listener)

        session.open_book("a.pdf")
        session.open_book("b.pdf")
        session.switch_to_book(0)
        session.close_book(0)
        session.clear_all_data()

        assert listener.call_count == 5

    def test_refused_open_does_not_notify(self, session):
        for i in range(10):
            session.open_book(f"book{i}.pdf")
        listener = MagicMock()
        session.changed.connect(listener)

        session.open_book("extra.pdf")

        listener.assert_not_called()

    def test_state_is_visible_when_notified(self, session):
        seen = []
        session.changed.connect(lambda: seen.append(session.get_open_books()))

        session.open_book("a.pdf")

        assert seen == [["a.pdf"]]


class TestPersistence:
    def test_tabs_and_catalog_written_to_store(self, session, store):
        session.open_book("a.pdf")
        session.open_book("b.pdf")
        session.switch_to_book(0)
        session.add_book("c.pdf", Path("/books/c.pdf"))

        assert session.wait_for_pending_writes(5000)

        assert store.get_string_list("open_books") == ["a.pdf", "b.pdf"]
        assert store.get_int("current_index") == 0
        assert store.get_string_list("all_books") == ["a.pdf", "b.pdf", "c.pdf"]
        assert store.get_string_list("book_paths") == ["c.pdf|/books/c.pdf"]

    def test_clear_all_data_persists_empty_state(self, session, store):
        session.open_book("a.pdf")

        session.clear_all_data()
        session.wait_for_pending_writes(5000)

        assert session.get_all_books() == []
        assert session.get_current_index() == -1
        assert store.get_string_list("open_books") == []
        assert store.get_string_list("all_books") == []
        assert store.get_int("current_index") == -1

    def test_store_failures_do_not_affect_memory(self, settings):
        ensure_qt_app()
        store = MagicMock()
        store.get_string_list.return_value = None
        store.get_int.return_value = None
        store.save_string_list.side_effect = OSError("disk full")
        store.save_int.return_value = False
        session = SessionManager(store=store, settings=settings)
        session.initialize()

        assert session.open_book("a.pdf")
        session.wait_for_pending_writes(5000)

        assert session.get_open_books() == ["a.pdf"]
        assert session.get_current_index() == 0

    def test_initialize_survives_store_read_errors(self, settings):
        ensure_qt_app()
        store = MagicMock()
        store.get_string_list.side_effect = OSError("unreadable")
        session = SessionManager(store=store, settings=settings)

        session.initialize()

        assert session.get_all_books() == []
        assert session.get_current_index() == -1


class TestInitialize:
    def _new_session(self, store, settings):
        ensure_qt_app()
        manager = SessionManager(store=store, settings=settings)
        manager.initialize()
        manager.wait_for_pending_writes(5000)
        return manager

    def test_restores_tabs_and_index(self, store, settings):
        store.save_string_list("all_books", ["a.pdf", "b.pdf"])
        store.save_string_list("book_paths", ["a.pdf|/books/a.pdf"])
        store.save_string_list("open_books", ["a.pdf", "b.pdf"])
        store.save_int("current_index", 1)

        session = self._new_session(store, settings)

        assert session.get_open_books() == ["a.pdf", "b.pdf"]
        assert session.get_current_book() == "b.pdf"
        assert session.get_book_file_path("a.pdf") == Path("/books/a.pdf")

    def test_restore_emits_one_notification(self, store, settings):
        ensure_qt_app()
        store.save_string_list("open_books", ["a.pdf", "b.pdf"])
        session = SessionManager(store=store, settings=settings)
        listener = MagicMock()
        session.changed.connect(listener)

        session.initialize()
        session.wait_for_pending_writes(5000)

        listener.assert_called_once()

    def test_nothing_to_restore_does_not_notify(self, store, settings):
        ensure_qt_app()
        store.save_string_list("all_books", ["a.pdf"])
        session = SessionManager(store=store, settings=settings)
        listener = MagicMock()
        session.changed.connect(listener)

        session.initialize()

        listener.assert_not_called()
        assert session.get_all_books() == ["a.pdf"]

    def test_restored_tabs_missing_from_catalog_are_added(self, store, settings):
        store.save_string_list("all_books", ["a.pdf"])
        store.save_string_list("open_books", ["b.pdf"])

        session = self._new_session(store, settings)

        assert session.get_all_books() == ["a.pdf", "b.pdf"]
        assert store.get_string_list("all_books") == ["a.pdf", "b.pdf"]

    @pytest.mark.parametrize("saved, expected", [(7, 1), (-3, 0), (None, 0)])
    def test_restored_index_is_clamped(self, store, settings, saved, expected):
        store.save_string_list("open_books", ["a.pdf", "b.pdf"])
        if saved is not None:
            store.save_int("current_index", saved)

        session = self._new_session(store, settings)

        assert session.get_current_index() == expected
        assert store.get_int("current_index") == expected

    def test_restored_tabs_are_deduplicated_and_capped(self, store, settings):
        names = [f"book{i}.pdf" for i in range(12)]
        store.save_string_list("open_books", ["book0.pdf"] + names)

        session = self._new_session(store, settings)

        assert session.get_open_books() == names[:10]
        assert store.get_string_list("open_books") == names[:10]

    def test_auto_restore_off_keeps_catalog_only(self, store, settings):
        store.save_string_list("all_books", ["a.pdf"])
        store.save_string_list("open_books", ["a.pdf"])
        store.save_int("current_index", 0)
        settings.set_auto_restore(False)

        session = self._new_session(store, settings)

        assert session.get_all_books() == ["a.pdf"]
        assert session.get_open_books() == []
        assert session.get_current_index() == -1

    def test_session_survives_restart(self, store, settings):
        first = self._new_session(store, settings)
        first.open_book("a.pdf")
        first.open_book("b.pdf")
        first.switch_to_book(0)
        first.wait_for_pending_writes(5000)

        second = self._new_session(store, settings)

        assert second.get_open_books() == ["a.pdf", "b.pdf"]
        assert second.get_current_index() == 0


class TestCatalogOperations:
    def test_add_book_registers_without_opening(self, session):
        assert session.add_book("a.pdf", Path("/books/a.pdf"))

        assert session.get_all_books() == ["a.pdf"]
        assert session.get_open_books() == []
        assert session.get_book_file_path("a.pdf") == Path("/books/a.pdf")

    def test_add_book_twice_reports_no_change(self, session):
        session.add_book("a.pdf")
        listener = MagicMock()
        session.changed.connect(listener)

        assert session.add_book("a.pdf") is False
        listener.assert_not_called()

    def test_get_book_assembles_state(self, store, settings, tmp_path):
        ensure_qt_app()
        cover_cache = MagicMock()
        cover_cache.get_cover_cache_path.return_value = tmp_path / "a.pdf.png"
        tracker = MagicMock()
        tracker.get_last_read_page.return_value = 12
        session = SessionManager(store=store, settings=settings, cover_cache=cover_cache, progress_tracker=tracker)
        session.add_book("a.pdf", Path("/books/a.pdf"))

        book = session.get_book("a.pdf")

        assert book.name == "a.pdf"
        assert book.file_path == Path("/books/a.pdf")
        assert book.cover_path == tmp_path / "a.pdf.png"
        assert book.last_read_page == 12
        assert session.get_book("missing.pdf") is None
        session.wait_for_pending_writes(5000)

    def test_remove_book_cascades(self, store, settings):
        ensure_qt_app()
        cover_cache = MagicMock()
        document_cache = MagicMock()
        tracker = MagicMock()
        session = SessionManager(
            store=store,
            settings=settings,
            cover_cache=cover_cache,
            document_cache=document_cache,
            progress_tracker=tracker,
        )
        session.add_book("a.pdf", Path("/books/a.pdf"))
        session.open_book("a.pdf")
        session.open_book("b.pdf")
        session.switch_to_book(0)

        assert session.remove_book("a.pdf") is True
        session.wait_for_pending_writes(5000)

        assert session.get_all_books() == ["b.pdf"]
        assert session.get_open_books() == ["b.pdf"]
        assert session.get_current_index() == 0
        assert session.get_book_file_path("a.pdf") is None
        cover_cache.clear_cover_cache.assert_called_once_with("a.pdf")
        document_cache.release.assert_called_once_with(Path("/books/a.pdf"))
        tracker.forget.assert_called_once_with("a.pdf")
        assert store.get_string_list("book_paths") == []

    def test_clear_all_data_cascades_to_every_book(self, store, settings):
        ensure_qt_app()
        renderer = FakeRenderer()
        document_cache = DocumentCache(renderer)
        cover_cache = MagicMock()
        tracker = MagicMock()
        session = SessionManager(
            store=store,
            settings=settings,
            cover_cache=cover_cache,
            document_cache=document_cache,
            progress_tracker=tracker,
        )
        session.add_book("a.pdf", Path("/books/a.pdf"))
        session.add_book("b.pdf", Path("/books/b.pdf"))
        session.open_book("a.pdf")
        document_cache.open_or_get(Path("/books/a.pdf"))

        session.clear_all_data()
        session.wait_for_pending_writes(5000)

        assert session.get_all_books() == []
        assert not document_cache.is_cached(Path("/books/a.pdf"))
        assert renderer.open_handles == []
        assert [c.args[0] for c in cover_cache.clear_cover_cache.call_args_list] == ["a.pdf", "b.pdf"]
        assert [c.args[0] for c in tracker.forget.call_args_list] == ["a.pdf", "b.pdf"]

    def test_remove_unknown_book_returns_false(self, session):
        assert session.remove_book("ghost.pdf") is False


def test_random_operation_sequences_keep_invariants(session):
    rng = random.Random(1234)
    names = [f"book{i}.pdf" for i in range(14)]

    for _ in range(500):
        action = rng.choice(["open", "open", "close", "switch", "remove"])
        if action == "open":
            name = rng.choice(names)
            before = session.get_open_books()
            ok = session.open_book(name)
            if not ok:
                assert len(before) == 10
                assert session.get_open_books() == before
            else:
                assert session.get_current_book() == name
        elif action == "close":
            session.close_book(rng.randint(-2, 11))
        elif action == "switch":
            session.switch_to_book(rng.randint(-2, 11))
        else:
            session.remove_book(rng.choice(names))
        assert_invariants(session)

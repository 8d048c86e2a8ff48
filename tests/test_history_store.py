import pytest

from clipbuddy.errors import InvalidTagError
from clipbuddy.models.content import FileContent, ImageContent, TextContent
from clipbuddy.services.history_store import HistoryStore, StoreEvent

PNG = b"\x89PNG\r\n\x1a\nfake"


def assert_ordered(store):
    items = store.items
    for a, b in zip(items, items[1:]):
        if a.is_pinned != b.is_pinned:
            assert a.is_pinned and not b.is_pinned
        else:
            assert a.created_at >= b.created_at


def texts(items):
    return [item.content.text for item in items]


def test_insert_creates_unpinned_untagged_item(store, persistence):
    item = store.insert(TextContent("hello"))

    assert item.item_id.startswith("i_")
    assert not item.is_pinned
    assert item.tags == frozenset()
    assert store.items == [item]
    assert persistence.records[item.item_id] == item


def test_insert_puts_newest_first(store):
    for i in range(3):
        store.insert(TextContent(f"t{i}"))
    assert texts(store.items) == ["t2", "t1", "t0"]


def test_capacity_keeps_most_recent_fifty(store, persistence):
    for i in range(60):
        store.insert(TextContent(f"t{i}"))

    assert len(store) == 50
    assert texts(store.items) == [f"t{i}" for i in range(59, 9, -1)]
    assert len(persistence.records) == 50
    assert_ordered(store)


def test_pinned_item_survives_eviction(store):
    pinned = store.insert(TextContent("keep me"))
    store.toggle_pin(pinned.item_id)

    for i in range(60):
        store.insert(TextContent(f"t{i}"))

    assert pinned.item_id in store
    assert store.items[0].item_id == pinned.item_id
    assert sum(1 for item in store.items if not item.is_pinned) == 50
    assert_ordered(store)


def test_scenario_pinned_hello_first(store):
    hello = store.insert(TextContent("hello"))
    store.insert(ImageContent(PNG))
    store.toggle_pin(hello.item_id)
    for i in range(49):
        store.insert(TextContent(f"more {i}"))

    assert len(store) == 51
    first = store.items[0]
    assert first.item_id == hello.item_id
    assert first.is_pinned
    assert sum(1 for item in store.items if not item.is_pinned) == 50


def test_toggle_pin_reorders_and_persists(store, persistence):
    old = store.insert(TextContent("old"))
    store.insert(TextContent("new"))

    store.toggle_pin(old.item_id)
    assert texts(store.items) == ["old", "new"]
    assert persistence.records[old.item_id].is_pinned

    store.toggle_pin(old.item_id)
    assert texts(store.items) == ["new", "old"]
    assert not persistence.records[old.item_id].is_pinned


def test_unpinning_reapplies_capacity(pasteboard, persistence, clock):
    store = HistoryStore(pasteboard, persistence, max_unpinned=2, clock=clock)
    oldest = store.insert(TextContent("oldest"))
    store.toggle_pin(oldest.item_id)
    store.insert(TextContent("a"))
    store.insert(TextContent("b"))
    assert len(store) == 3

    store.toggle_pin(oldest.item_id)

    assert texts(store.items) == ["b", "a"]
    assert oldest.item_id not in persistence.records


def test_equal_timestamps_keep_later_insert_first(pasteboard, persistence):
    from datetime import datetime

    frozen = datetime(2024, 1, 1, 12, 0, 0)
    store = HistoryStore(pasteboard, persistence, max_unpinned=2, clock=lambda: frozen)
    store.insert(TextContent("first"))
    store.insert(TextContent("second"))
    store.insert(TextContent("third"))

    assert texts(store.items) == ["third", "second"]


def test_tag_index_tracks_edits(store):
    item1 = store.insert(TextContent("one"))
    item2 = store.insert(TextContent("two"))

    store.add_tag(item1.item_id, "work")
    store.add_tag(item2.item_id, "home")
    assert store.tags == frozenset({"work", "home"})

    store.remove_tag(item1.item_id, "work")
    assert store.tags == frozenset({"home"})
    assert store.get(item1.item_id).tags == frozenset()


def test_tag_edits_persist_joined_string(store, persistence):
    item = store.insert(TextContent("one"))
    store.add_tag(item.item_id, " work ")
    store.add_tag(item.item_id, "home")

    assert persistence.records[item.item_id].tags == frozenset({"work", "home"})


def test_duplicate_add_and_absent_remove_are_noops(store, persistence):
    item = store.insert(TextContent("one"))
    store.add_tag(item.item_id, "work")
    writes = persistence.calls.count("update_tags")

    store.add_tag(item.item_id, "work")
    store.remove_tag(item.item_id, "missing")

    assert persistence.calls.count("update_tags") == writes
    assert store.get(item.item_id).tags == frozenset({"work"})


@pytest.mark.parametrize("tag", ["", "  ", "a,b"])
def test_invalid_tags_rejected(store, tag):
    item = store.insert(TextContent("one"))
    with pytest.raises(InvalidTagError):
        store.add_tag(item.item_id, tag)
    assert store.get(item.item_id).tags == frozenset()


def test_eviction_drops_tags_from_index(pasteboard, persistence, clock):
    store = HistoryStore(pasteboard, persistence, max_unpinned=1, clock=clock)
    first = store.insert(TextContent("first"))
    store.add_tag(first.item_id, "gone")

    store.insert(TextContent("second"))

    assert store.tags == frozenset()


def test_unknown_ids_are_ignored(store, persistence, pasteboard):
    store.insert(TextContent("one"))
    before = list(store.items)
    calls = list(persistence.calls)
    count = pasteboard.change_count()

    store.toggle_pin("i_missing")
    store.add_tag("i_missing", "x")
    store.remove_tag("i_missing", "x")
    store.copy_out("i_missing")

    assert store.items == before
    assert persistence.calls == calls
    assert pasteboard.change_count() == count


def test_clear_all_removes_everything(store, persistence, pasteboard):
    item = store.insert(TextContent("pinned"))
    store.toggle_pin(item.item_id)
    store.add_tag(item.item_id, "work")
    store.insert(TextContent("other"))
    pasteboard.set_contents(text="on the clipboard")

    store.clear_all()

    assert store.items == []
    assert store.tags == frozenset()
    assert persistence.load_all() == []
    assert pasteboard.read_string() is None


def test_query_empty_matches_all_in_order(store):
    for i in range(3):
        store.insert(TextContent(f"t{i}"))
    assert store.query("", ()) == store.items


def test_query_no_match_is_empty(store):
    store.insert(TextContent("hello"))
    assert store.query("xyz", ()) == []


def test_query_search_is_case_insensitive_over_search_text(store):
    store.insert(TextContent("Hello World"))
    store.insert(FileContent("/home/me/Notes.TXT"))
    store.insert(ImageContent(PNG))

    assert texts(store.query("WORLD")) == ["Hello World"]
    assert [item.content.path for item in store.query("notes.txt")] == ["/home/me/Notes.TXT"]
    # the directory part of a file path is not searchable
    assert store.query("home/me") == []
    assert [item.content for item in store.query("image")] == [ImageContent(PNG)]


def test_query_tag_filter_intersects(store):
    a = store.insert(TextContent("alpha"))
    b = store.insert(TextContent("beta"))
    store.insert(TextContent("gamma"))
    store.add_tag(a.item_id, "work")
    store.add_tag(b.item_id, "home")

    assert texts(store.query("", {"work", "other"})) == ["alpha"]
    assert texts(store.query("", ["work", "home"])) == ["beta", "alpha"]
    assert texts(store.query("beta", {"work"})) == []


def test_query_returns_snapshot(store):
    item = store.insert(TextContent("alpha"))
    result = store.query()
    store.insert(TextContent("beta"))
    store.toggle_pin(item.item_id)

    assert len(result) == 1
    assert not result[0].is_pinned


def test_copy_out_writes_each_representation(store, pasteboard):
    text = store.insert(TextContent("hello"))
    image = store.insert(ImageContent(PNG))
    path = store.insert(FileContent("/tmp/report.pdf"))
    before = list(store.items)

    store.copy_out(text.item_id)
    assert pasteboard.read_string() == "hello"

    store.copy_out(image.item_id)
    assert pasteboard.read_image_bytes() == PNG
    assert pasteboard.read_string() is None

    store.copy_out(path.item_id)
    assert pasteboard.read_file_urls() == ["/tmp/report.pdf"]

    assert store.items == before


def test_copy_out_notifies_pasteboard_write_hook(store):
    calls = []
    store.on_pasteboard_write = lambda: calls.append(True)
    item = store.insert(TextContent("hello"))

    store.copy_out(item.item_id)

    assert calls == [True]


def test_observers_receive_events(store):
    events = []
    unsubscribe = store.subscribe(events.append)

    item = store.insert(TextContent("one"))
    assert events == [StoreEvent.ITEMS_CHANGED]

    events.clear()
    store.add_tag(item.item_id, "work")
    assert events == [StoreEvent.ITEMS_CHANGED, StoreEvent.TAGS_CHANGED]

    events.clear()
    store.toggle_pin(item.item_id)
    assert events == [StoreEvent.ITEMS_CHANGED]

    events.clear()
    store.clear_all()
    assert events == [StoreEvent.ITEMS_CHANGED, StoreEvent.TAGS_CHANGED]

    events.clear()
    unsubscribe()
    store.insert(TextContent("two"))
    assert events == []


def test_failing_observer_does_not_break_store(store):
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    store.subscribe(broken)
    store.subscribe(seen.append)

    store.insert(TextContent("one"))

    assert len(store) == 1
    assert seen == [StoreEvent.ITEMS_CHANGED]


def test_persistence_failure_keeps_memory_state(store, persistence, caplog):
    persistence.fail_writes = True

    item = store.insert(TextContent("one"))
    store.toggle_pin(item.item_id)
    store.add_tag(item.item_id, "work")

    assert store.get(item.item_id).is_pinned
    assert store.tags == frozenset({"work"})
    assert persistence.records == {}
    assert "keeping in-memory state" in caplog.text


def test_load_restores_persisted_state(persistence, pasteboard, clock):
    first = HistoryStore(pasteboard, persistence, clock=clock)
    a = first.insert(TextContent("a"))
    b = first.insert(ImageContent(PNG))
    first.insert(FileContent("/tmp/c.txt"))
    first.toggle_pin(a.item_id)
    first.add_tag(b.item_id, "pics")

    second = HistoryStore(pasteboard, persistence)
    assert second.load() == 3

    assert second.items == first.items
    assert second.tags == frozenset({"pics"})


def test_load_applies_pin_first_ordering_and_capacity(persistence, pasteboard, clock):
    writer = HistoryStore(pasteboard, persistence, max_unpinned=10, clock=clock)
    items = [writer.insert(TextContent(f"t{i}")) for i in range(5)]
    writer.toggle_pin(items[0].item_id)

    reader = HistoryStore(pasteboard, persistence, max_unpinned=2)
    reader.load()

    assert texts(reader.items) == ["t0", "t4", "t3"]
    assert set(persistence.records) == {item.item_id for item in reader.items}


def test_load_without_persistence_is_empty(pasteboard):
    store = HistoryStore(pasteboard)
    assert store.load() == 0
    assert store.items == []


def test_clear_all_then_load_is_empty(store, persistence, pasteboard):
    store.insert(TextContent("one"))
    store.clear_all()

    fresh = HistoryStore(pasteboard, persistence)
    fresh.load()
    assert fresh.items == []


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        HistoryStore(max_unpinned=0)

"""
Unit tests for card records and the SQLite-backed stores.
"""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from flashdeck.review import (
    Card,
    KeyValueCardStore,
    KeyValueStore,
    SessionSnapshot,
    SessionStateStore,
    StoreUnavailable,
    get_default_cards,
)
from flashdeck.review.card import parse_timestamp
from flashdeck.review.card_store import CARDS_KEY
from flashdeck.review.session_state import SESSION_COMPLETED_KEY, SESSION_STORAGE_KEY


class TestCardRecords:
    """Test conversion between Card and its storage record."""

    def test_to_dict_uses_storage_keys(self):
        card = Card(
            id="c1",
            word="Hola",
            translation="Hello",
            meanings=["greeting"],
            repetition_count=2,
            ease_factor=2.36,
            interval=6,
            next_review_date=datetime(2024, 3, 21, 9, 30),
        )

        assert card.to_dict() == {
            "id": "c1",
            "word": "Hola",
            "translation": "Hello",
            "meanings": ["greeting"],
            "repetitionCount": 2,
            "easeFactor": 2.36,
            "interval": 6,
            "nextReviewDate": "2024-03-21T09:30:00",
        }
        assert Card.from_dict(card.to_dict()) == card

    def test_from_dict_fills_missing_srs_fields(self):
        card = Card.from_dict({"id": 7, "word": "Casa"})

        assert card.id == "7"
        assert card.translation == ""
        assert card.meanings == []
        assert card.repetition_count == 0
        assert card.ease_factor == 2.5
        assert card.interval == 0

    def test_from_dict_accepts_single_meaning_string(self):
        card = Card.from_dict({"id": "c1", "word": "Casa", "meanings": "home"})

        assert card.meanings == ["home"]

    def test_from_dict_requires_word(self):
        with pytest.raises(KeyError):
            Card.from_dict({"id": "c1"})

    def test_parse_utc_timestamp_to_local_naive(self):
        parsed = parse_timestamp("2024-03-15T12:00:00.000Z")

        expected = datetime(2024, 3, 15, 12, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert parsed.tzinfo is None
        assert parsed == expected

    def test_parse_naive_timestamp_unchanged(self):
        assert parse_timestamp("2024-03-15T12:00:00") == datetime(2024, 3, 15, 12)

    def test_copy_is_independent(self):
        card = Card(id="c1", word="Hola", meanings=["a"])
        clone = card.copy()

        clone.word = "Adios"
        clone.meanings.append("b")

        assert card.word == "Hola"
        assert card.meanings == ["a"]

    def test_due_and_lapse_flags(self):
        now = datetime(2024, 3, 15, 12)
        card = Card(id="c1", word="Hola", interval=0, next_review_date=now)

        assert card.is_due(now)
        assert not card.is_due(now - timedelta(seconds=1))
        assert card.is_lapsed
        assert card.is_new


class TestDefaultCards:
    def test_default_cards_are_new_and_due(self):
        now = datetime(2024, 3, 15, 12)
        cards = get_default_cards(now)

        assert len(cards) == 10
        assert len({card.id for card in cards}) == len(cards)
        assert all(card.repetition_count == 0 for card in cards)
        assert all(card.next_review_date == now for card in cards)

    def test_default_cards_are_fresh_copies(self):
        first = get_default_cards()
        first[0].word = "changed"

        assert get_default_cards()[0].word == "Hola"


class TestKeyValueStore:
    def test_get_missing_key(self, kv):
        assert kv.get("missing") is None

    def test_set_get_overwrite_delete(self, kv):
        kv.set("key", {"a": [1, 2]})
        kv.set("key", {"a": [3]})

        assert kv.get("key") == {"a": [3]}

        kv.delete("key")
        kv.delete("key")

        assert kv.get("key") is None

    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "nested" / "store.db"
        first = KeyValueStore(path)
        first.set("key", [1, 2, 3])
        first.close()

        second = KeyValueStore(path)
        assert second.get("key") == [1, 2, 3]
        second.close()

    def test_unserializable_value_raises(self, kv):
        with pytest.raises(StoreUnavailable):
            kv.set("key", {"when": datetime.now()})

    def test_corrupt_value_raises(self, kv):
        kv.conn.execute("INSERT INTO kv_store (key, value) VALUES (?, ?)", ("bad", "{not json"))
        kv.conn.commit()

        with pytest.raises(StoreUnavailable):
            kv.get("bad")

    def test_closed_database_raises(self, kv):
        kv.conn.close()

        with pytest.raises(StoreUnavailable) as exc_info:
            kv.get("key")

        assert isinstance(exc_info.value.__cause__, sqlite3.Error)

    def test_unopenable_path_raises(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StoreUnavailable):
            KeyValueStore(blocker / "store.db")


class TestKeyValueCardStore:
    @pytest.mark.asyncio
    async def test_load_empty(self, card_store):
        assert await card_store.load() == []

    @pytest.mark.asyncio
    async def test_save_then_load(self, card_store, make_card):
        cards = [make_card(word="Hola"), make_card(word="Casa", repetition_count=2, interval=6)]

        await card_store.save(cards)

        assert await card_store.load() == cards

    @pytest.mark.asyncio
    async def test_records_stored_as_json_array(self, kv, card_store, make_card):
        await card_store.save([make_card(word="Hola")])

        records = kv.get(CARDS_KEY)
        assert isinstance(records, list)
        assert records[0]["word"] == "Hola"
        assert isinstance(records[0]["nextReviewDate"], str)

    @pytest.mark.asyncio
    async def test_corrupt_records_raise(self, kv):
        kv.set(CARDS_KEY, [{"id": "c1"}])

        with pytest.raises(StoreUnavailable):
            await KeyValueCardStore(kv).load()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "blob",
        [{"a": 1}, "oops", ["x"], [1, 2], [{"id": "c1", "word": "Hola"}, None]],
    )
    async def test_wrong_shape_raises(self, kv, blob):
        kv.set(CARDS_KEY, blob)

        with pytest.raises(StoreUnavailable):
            await KeyValueCardStore(kv).load()

    def test_close_releases_connection(self, kv, card_store):
        kv.get("warm")

        card_store.close()

        assert kv._conn is None


class TestSessionStateStore:
    def test_snapshot_round_trip(self, session_store, make_card):
        snapshot = SessionSnapshot(cards=[make_card(), make_card()], size=5, index=0, direction=False)

        session_store.save_snapshot(snapshot)

        assert session_store.load_snapshot() == snapshot

    def test_snapshot_wire_format(self, kv, session_store, make_card):
        session_store.save_snapshot(SessionSnapshot(cards=[make_card()], size=1))

        data = kv.get(SESSION_STORAGE_KEY)
        assert set(data) == {"cards", "size", "index", "direction"}

    def test_missing_snapshot(self, session_store):
        assert session_store.load_snapshot() is None

    def test_partial_snapshot_uses_defaults(self, kv, session_store):
        kv.set(SESSION_STORAGE_KEY, {"cards": []})

        snapshot = session_store.load_snapshot()

        assert snapshot.size == 0
        assert snapshot.index == 0
        assert snapshot.direction is True
        assert not snapshot.is_resumable

    def test_corrupt_snapshot_treated_as_absent(self, kv, session_store):
        kv.set(SESSION_STORAGE_KEY, {"cards": [{"word": "no id"}], "size": 1})

        assert session_store.load_snapshot() is None

    def test_saving_snapshot_clears_completion_guard(self, kv, session_store, make_card):
        session_store.save_completion_guard(datetime(2024, 3, 15, 12))

        session_store.save_snapshot(SessionSnapshot(cards=[make_card()], size=1))

        assert kv.get(SESSION_COMPLETED_KEY) is None
        assert session_store.load_completion_guard() is None

    def test_clear_snapshot(self, session_store, make_card):
        session_store.save_snapshot(SessionSnapshot(cards=[make_card()], size=1))

        session_store.clear_snapshot()

        assert session_store.load_snapshot() is None

    def test_completion_guard_round_trip(self, session_store):
        completed_at = datetime(2024, 3, 15, 18, 45)

        session_store.save_completion_guard(completed_at)
        assert session_store.load_completion_guard() == completed_at

        session_store.clear_completion_guard()
        assert session_store.load_completion_guard() is None

    def test_unreadable_guard_treated_as_absent(self, kv, session_store):
        kv.set(SESSION_COMPLETED_KEY, "yesterday-ish")

        assert session_store.load_completion_guard() is None

    def test_write_failures_are_swallowed(self, kv, session_store, make_card):
        kv.conn.close()

        session_store.save_snapshot(SessionSnapshot(cards=[make_card()], size=1))
        session_store.save_completion_guard(datetime.now())
        session_store.clear_snapshot()
        session_store.clear_completion_guard()

        assert session_store.load_snapshot() is None

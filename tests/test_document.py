"""Tests for schedbot.data.document — record validation and (de)serialization."""

import logging
from datetime import datetime, timezone

import pytest

from schedbot.core.errors import DataError
from schedbot.data.document import (
    dump_store,
    format_timestamp,
    load_store,
    parse_record,
    parse_timestamp,
)

from conftest import make_record


class TestTimestamps:
    def test_parse(self):
        assert parse_timestamp("2026-10-21T20:00:00Z") == datetime(2026, 10, 21, 20, 0, tzinfo=timezone.utc)

    def test_format_normalizes_to_utc(self):
        from datetime import timedelta
        cest = timezone(timedelta(hours=2))
        assert format_timestamp(datetime(2026, 10, 21, 22, 0, tzinfo=cest)) == "2026-10-21T20:00:00Z"

    def test_parse_rejects_offsets(self):
        with pytest.raises(ValueError):
            parse_timestamp("2026-10-21T20:00:00+02:00")


class TestParseRecord:
    def test_valid(self):
        record = parse_record(make_record(user="  Alice "))
        assert record.user == "alice"
        assert record.repeat == 5
        assert record.start.tzinfo is not None

    def test_repeat_masked_to_seven_bits(self):
        assert parse_record(make_record(repeat=0xFF)).repeat == 0x7F

    @pytest.mark.parametrize("field", ["user", "start", "end", "title", "repeat"])
    def test_missing_field(self, field):
        raw = make_record()
        del raw[field]
        with pytest.raises(DataError, match=field):
            parse_record(raw)

    def test_bad_timestamp(self):
        with pytest.raises(DataError):
            parse_record(make_record(start="tomorrow"))

    def test_end_before_start(self):
        with pytest.raises(DataError):
            parse_record(make_record(start="2026-10-21T22:00:00Z", end="2026-10-21T20:00:00Z"))

    def test_bool_repeat_rejected(self):
        with pytest.raises(DataError):
            parse_record(make_record(repeat=True))

    def test_numeric_title_rejected(self):
        with pytest.raises(DataError):
            parse_record(make_record(title=42))

    def test_empty_user_rejected(self):
        with pytest.raises(DataError):
            parse_record(make_record(user="   "))

    def test_not_an_object(self):
        with pytest.raises(DataError):
            parse_record(["alice"])


class TestLoadStore:
    def test_groups_by_owner_in_order(self):
        store = load_store([
            make_record(user="alice", title="A"),
            make_record(user="bob", title="B"),
            make_record(user="ALICE", title="C"),
        ])
        assert store.owners() == ["alice", "bob"]
        assert [e.title for e in store.entries("alice")] == ["A", "C"]

    def test_malformed_records_are_skipped(self, caplog):
        with caplog.at_level(logging.WARNING, logger="schedbot.data.document"):
            store = load_store([
                make_record(title="good"),
                "not a record",
                make_record(start="bad"),
                make_record(title="also good", user="bob"),
            ])
        assert len(store) == 2
        assert "Skipping schedule record 1" in caplog.text
        assert "Skipping schedule record 2" in caplog.text

    def test_empty_document(self):
        assert len(load_store([])) == 0


class TestDumpStore:
    def test_round_trip_keeps_every_record(self):
        records = [
            make_record(user="alice", title="A", repeat=0x1F),
            make_record(user="bob", title="B", repeat=0),
            make_record(user="alice", title="C", repeat=0x40,
                        start="2026-10-25T23:30:00Z", end="2026-10-26T01:00:00Z"),
        ]
        dumped = dump_store(load_store(records))
        key = lambda r: (r["user"], r["title"])
        assert sorted(dumped, key=key) == sorted(records, key=key)

    def test_dumped_owner_is_normalized(self):
        dumped = dump_store(load_store([make_record(user="Alice")]))
        assert dumped[0]["user"] == "alice"

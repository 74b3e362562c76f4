"""Pure cache entry helpers."""

from datetime import datetime, timedelta, timezone

import pytest

from models.cache import create_entry, default_ttl, ensure_utc, is_expired, payload_size, record_hit

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("cache_type,minutes", [
    ("api_response", 30),
    ("workflow_result", 120),
    ("user_data", 60),
    ("system_data", 240),
    ("something_else", 60),
])
def test_default_ttl_by_type(cache_type, minutes):
    entry = create_entry("k", {"a": 1}, cache_type, now=NOW)
    assert default_ttl(cache_type) == minutes
    assert entry.expires_at == NOW + timedelta(minutes=minutes)


def test_explicit_ttl_overrides_type_default():
    entry = create_entry("k", 1, "api_response", ttl_minutes=5, now=NOW)
    assert entry.expires_at == NOW + timedelta(minutes=5)


def test_zero_ttl_falls_back_to_default():
    entry = create_entry("k", 1, "workflow_result", ttl_minutes=0, now=NOW)
    assert entry.expires_at == NOW + timedelta(minutes=120)


def test_new_entry_metadata_and_timestamps():
    entry = create_entry("k", {"a": 1}, "user_data", user_id=7, now=NOW)
    assert entry.meta == {"size": payload_size({"a": 1}), "hits": 0}
    assert entry.user_id == 7
    assert entry.created_at == entry.updated_at == NOW
    assert entry.last_accessed is None


def test_caller_metadata_overrides_defaults():
    entry = create_entry("k", "x", "api_response", metadata={"hits": 9, "endpoint": "/e"}, now=NOW)
    assert entry.meta["hits"] == 9
    assert entry.meta["endpoint"] == "/e"
    assert entry.meta["size"] == payload_size("x")


def test_payload_size_is_utf8_byte_length_of_compact_json():
    assert payload_size({"a": 1}) == len('{"a":1}')
    assert payload_size("é") == len('"é"'.encode("utf-8"))


def test_is_expired_ignores_hits():
    entry = create_entry("k", 1, "api_response", ttl_minutes=10, now=NOW)
    entry.meta["hits"] = 1000

    assert not is_expired(entry, NOW + timedelta(minutes=10))
    assert is_expired(entry, NOW + timedelta(minutes=10, microseconds=1))


def test_is_expired_accepts_naive_stored_datetimes():
    entry = create_entry("k", 1, "api_response", ttl_minutes=1, now=NOW)
    entry.expires_at = entry.expires_at.replace(tzinfo=None)
    assert is_expired(entry, NOW + timedelta(minutes=2))


def test_record_hit_returns_updated_copy():
    entry = create_entry("k", {"a": 1}, "api_response", now=NOW)
    later = NOW + timedelta(minutes=1)

    hit = record_hit(entry, later)

    assert hit.meta["hits"] == 1
    assert hit.last_accessed == later
    assert hit.updated_at == later
    assert hit.expires_at == entry.expires_at
    assert entry.meta["hits"] == 0


def test_ensure_utc():
    naive = datetime(2026, 1, 1, 0, 0)
    assert ensure_utc(naive).tzinfo is timezone.utc
    assert ensure_utc(None) is None
    assert ensure_utc(NOW) is NOW

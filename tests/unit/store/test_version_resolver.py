"""Unit tests for batch and version conversions."""

from __future__ import annotations

import pytest

from batch.batch_id import BatchID
from batch.batcher import MillisecondBatcher
from core.types import CurrentEncoding, LegacyEncoding
from store.version_resolver import VersionResolver, encoding_for, parse_tag

_BATCH_IDS = [BatchID(-3), BatchID(0), BatchID(1), BatchID(17), BatchID(100_000)]


def _resolver() -> VersionResolver:
    return VersionResolver(MillisecondBatcher(1000))


def test_version_is_start_of_following_batch() -> None:
    """A batch should publish at the first millisecond of the next batch."""
    version = _resolver().batch_id_to_version(BatchID(4))

    assert version == 5000


@pytest.mark.parametrize("batch_id", _BATCH_IDS)
def test_current_convention_roundtrips(batch_id: BatchID) -> None:
    """Version to batch should invert batch to version."""
    resolver = _resolver()

    resolved = resolver.version_to_batch_id(resolver.batch_id_to_version(batch_id))

    assert resolved == batch_id


@pytest.mark.parametrize("batch_id", _BATCH_IDS)
def test_legacy_tag_names_upper_bound_batch(batch_id: BatchID) -> None:
    """A legacy tag should resolve to the batch before the tagged bound."""
    resolver = _resolver()
    version = resolver.batch_id_to_version(batch_id.next)

    resolved = resolver.version_to_batch_id_compat(version, str(batch_id.next))

    assert resolved == batch_id


def test_version_numbers_increase_with_batches() -> None:
    """Later batches should always map to greater version numbers."""
    resolver = _resolver()

    versions = [resolver.batch_id_to_version(batch_id) for batch_id in _BATCH_IDS]

    assert versions == sorted(set(versions))


def test_legacy_tag_wins_over_version_number() -> None:
    """A parsable tag should decide the batch regardless of the number."""
    resolved = _resolver().version_to_batch_id_compat(123_456, "BatchID.8")

    assert resolved == BatchID(7)


@pytest.mark.parametrize("bad_tag", ["", "garbage", "BatchID.x", "8"])
def test_unparsable_tag_resolves_like_no_tag(bad_tag: str) -> None:
    """Bad tags should fall back to the current convention."""
    resolver = _resolver()

    with_bad_tag = resolver.version_to_batch_id_compat(9000, bad_tag)

    assert with_bad_tag == resolver.version_to_batch_id_compat(9000, None)


def test_encoding_for_distinguishes_tagged_versions() -> None:
    """Tag presence should select the legacy encoding."""
    encodings = (encoding_for(None), encoding_for("BatchID.3"))

    assert encodings == (CurrentEncoding(), LegacyEncoding(raw_tag="BatchID.3"))


def test_resolve_uses_explicit_encoding() -> None:
    """Resolve should honour the encoding it is handed."""
    resolver = _resolver()

    resolved = resolver.resolve(5000, LegacyEncoding(raw_tag="BatchID.2"))

    assert resolved == BatchID(1)


def test_parse_tag_returns_none_for_garbage() -> None:
    """Tag parsing should never raise."""
    assert parse_tag("not a batch") is None

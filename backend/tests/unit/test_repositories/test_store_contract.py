"""
Store Contract Tests

Behaviour every backend must share, run against the memory and SQL stores.
"""

import asyncio
from datetime import timedelta

import pytest

from kvstore.common.errors import NotFoundError
from kvstore.common.time import utc_now
from kvstore.domain.options import (
    DeleteOptions,
    ListOptions,
    ReadOptions,
    WriteOptions,
)
from kvstore.domain.record import Record


async def _write_all(store, *keys, **opts):
    for key in keys:
        await store.write(Record(key=key, value=key.encode()), WriteOptions(**opts))


@pytest.mark.asyncio
async def test_write_and_read(store):
    """Test writing and reading back a record"""
    await store.write(Record(key="greeting", value=b"hello"))

    records = await store.read("greeting")

    assert len(records) == 1
    assert records[0].key == "greeting"
    assert records[0].value == b"hello"
    assert records[0].ttl == timedelta(0)
    assert records[0].expiry is None


@pytest.mark.asyncio
async def test_read_missing_key(store):
    """Test reading a key that was never written"""
    with pytest.raises(NotFoundError):
        await store.read("missing")


@pytest.mark.asyncio
async def test_upsert_keeps_one_record(store):
    """Writing a key twice leaves one record with the latest value"""
    await store.write(Record(key="k", value=b"first"))
    await store.write(Record(key="k", value=b"second"))

    records = await store.read("k")

    assert [r.value for r in records] == [b"second"]
    assert await store.list() == ["k"]


@pytest.mark.asyncio
async def test_ttl_populates_expiry(store):
    """Records written with a TTL read back with TTL and expiry"""
    before = utc_now()
    await store.write(Record(key="k", value=b"v", ttl=timedelta(seconds=60)))

    record = (await store.read("k"))[0]

    assert timedelta(seconds=58) < record.ttl <= timedelta(seconds=60)
    assert before + timedelta(seconds=59) < record.expiry <= utc_now() + timedelta(seconds=61)


@pytest.mark.asyncio
async def test_option_expiry_beats_record_ttl(store):
    """Operation expiry wins over the record TTL"""
    expiry = utc_now() + timedelta(seconds=100)
    await store.write(
        Record(key="k", value=b"v", ttl=timedelta(seconds=5)),
        WriteOptions(expiry=expiry),
    )

    record = (await store.read("k"))[0]

    assert abs(record.expiry - expiry) < timedelta(seconds=1)


@pytest.mark.asyncio
async def test_lazy_expiration(store):
    """Expired records are omitted by read and list"""
    await store.write(Record(key="short", value=b"v", ttl=timedelta(milliseconds=1)))
    await store.write(Record(key="long", value=b"v"))
    await asyncio.sleep(0.01)

    with pytest.raises(NotFoundError):
        await store.read("short")
    assert await store.list() == ["long"]


@pytest.mark.asyncio
async def test_expired_records_do_not_take_page_slots(store):
    """Pagination applies to live records only"""
    await _write_all(store, "k0")
    await store.write(Record(key="k1", value=b"v", ttl=timedelta(milliseconds=1)))
    await _write_all(store, "k2", "k3")
    await asyncio.sleep(0.01)

    assert await store.list(ListOptions(limit=2)) == ["k0", "k2"]
    assert await store.list(ListOptions(limit=2, offset=1)) == ["k3"]


@pytest.mark.asyncio
async def test_rewrite_revives_expired_key(store):
    """Writing an expired key again makes it readable"""
    await store.write(Record(key="k", value=b"old", ttl=timedelta(milliseconds=1)))
    await asyncio.sleep(0.01)
    await store.write(Record(key="k", value=b"new"))

    assert [r.value for r in await store.read("k")] == [b"new"]


@pytest.mark.asyncio
async def test_prefix_suffix_union(store):
    """Prefix and suffix together return the deduplicated union"""
    await _write_all(store, "a1", "1a", "b1", "b2")

    keys = await store.list(ListOptions(prefix="1", suffix="1"))

    assert sorted(keys) == ["1a", "a1", "b1"]
    assert len(keys) == len(set(keys))


@pytest.mark.asyncio
async def test_list_prefix_and_suffix_separately(store):
    await _write_all(store, "a1", "1a", "b1")

    assert await store.list(ListOptions(prefix="a")) == ["a1"]
    assert sorted(await store.list(ListOptions(suffix="1"))) == ["a1", "b1"]
    assert sorted(await store.list(ListOptions(prefix="a", suffix="1"))) == ["a1", "b1"]


@pytest.mark.asyncio
async def test_read_prefix_and_suffix(store):
    await _write_all(store, "user:1", "user:2", "admin:1", "1")

    prefixed = await store.read("user:", ReadOptions(prefix=True))
    assert sorted(r.key for r in prefixed) == ["user:1", "user:2"]

    suffixed = await store.read("1", ReadOptions(suffix=True))
    assert sorted(r.key for r in suffixed) == ["1", "admin:1", "user:1"]

    both = await store.read("1", ReadOptions(prefix=True, suffix=True))
    assert sorted(r.key for r in both) == ["1", "admin:1", "user:1"]


@pytest.mark.asyncio
async def test_read_prefix_not_found(store):
    await _write_all(store, "user:1")

    with pytest.raises(NotFoundError):
        await store.read("admin:", ReadOptions(prefix=True))


@pytest.mark.asyncio
async def test_namespace_isolation(store):
    """Identical keys in different tables never leak across"""
    await store.write(Record(key="k", value=b"one"), WriteOptions(table="t1"))
    await store.write(Record(key="k", value=b"two"), WriteOptions(table="t2"))
    await store.write(Record(key="only1", value=b"x"), WriteOptions(table="t1"))

    assert [r.value for r in await store.read("k", ReadOptions(table="t1"))] == [b"one"]
    assert [r.value for r in await store.read("k", ReadOptions(table="t2"))] == [b"two"]
    assert await store.list(ListOptions(table="t2")) == ["k"]
    with pytest.raises(NotFoundError):
        await store.read("only1", ReadOptions(table="t2"))
    with pytest.raises(NotFoundError):
        await store.read("k")


@pytest.mark.asyncio
async def test_pagination_is_stable(store):
    """limit=2, offset=1 over five keys returns the third and fourth"""
    await _write_all(store, "k0", "k1", "k2", "k3", "k4")

    first = await store.list(ListOptions(limit=2, offset=1))
    second = await store.list(ListOptions(limit=2, offset=1))

    assert first == ["k2", "k3"]
    assert first == second


@pytest.mark.asyncio
async def test_read_pagination(store):
    await _write_all(store, "p0", "p1", "p2")

    records = await store.read("p", ReadOptions(prefix=True, limit=2, offset=1))

    assert [r.key for r in records] == ["p2"]


@pytest.mark.asyncio
async def test_delete(store):
    """Test deleting a record"""
    await _write_all(store, "k", "other")

    await store.delete("k")

    with pytest.raises(NotFoundError):
        await store.read("k")
    assert await store.list() == ["other"]


@pytest.mark.asyncio
async def test_delete_missing_key_is_noop(store):
    await store.delete("missing")
    await store.delete("missing", DeleteOptions(table="elsewhere"))


@pytest.mark.asyncio
async def test_delete_respects_table(store):
    await store.write(Record(key="k", value=b"v"), WriteOptions(table="t1"))

    await store.delete("k", DeleteOptions(table="t2"))

    assert len(await store.read("k", ReadOptions(table="t1"))) == 1


@pytest.mark.asyncio
async def test_write_does_not_modify_record(store):
    record = Record(key="k", value=b"v", ttl=timedelta(seconds=5))

    await store.write(record, WriteOptions(ttl=timedelta(seconds=50)))

    assert record.ttl == timedelta(seconds=5)
    assert record.expiry is None


@pytest.mark.asyncio
async def test_name_and_options(store):
    assert str(store) in ("memory", "sqlalchemy")

    snapshot = store.options
    snapshot.table = "changed"

    assert store.options.table != "changed"


@pytest.mark.asyncio
async def test_init_changes_default_table(store):
    await store.write(Record(key="k", value=b"v"))

    await store.init(table="other")

    with pytest.raises(NotFoundError):
        await store.read("k")
    assert store.options.table == "other"


@pytest.mark.asyncio
async def test_read_page_past_end(store):
    await _write_all(store, "p0", "p1")

    with pytest.raises(NotFoundError):
        await store.read("p", ReadOptions(prefix=True, limit=2, offset=1))

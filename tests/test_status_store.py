import pytest

from portal.services.status_mapper import default_record, map_event_status
from portal.models.progress_record import ProgressRecord
from portal.services.status_store import InMemoryStatusStore, StatusStore, get_status_store


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _record(client_id, event="started"):
    mapped = map_event_status(event)
    return ProgressRecord(
        client_id=client_id,
        status=mapped.status,
        progress=mapped.progress,
        current_step=mapped.current_step,
        steps=mapped.steps,
        message=event,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return InMemoryStatusStore(ttl_seconds=60, clock=clock)


def test_get_unknown_returns_none(store):
    assert store.get("missing") is None
    assert len(store) == 0


def test_put_then_get(store):
    store.put(_record("a"))
    assert store.get("a").progress == 10


def test_put_overwrites(store):
    store.put(_record("a", "started"))
    store.put(_record("a", "content_generated"))
    record = store.get("a")
    assert record.progress == 60
    assert record.message == "content_generated"
    assert len(store) == 1


def test_stored_record_is_isolated_from_caller(store):
    record = _record("a")
    store.put(record)
    record.steps["upload"] = "failed"
    fetched = store.get("a")
    assert fetched.steps["upload"] == "in-progress"
    fetched.message = "changed"
    assert store.get("a").message == "started"


def test_entry_expires_after_ttl(store, clock):
    store.put(_record("a"))
    clock.now += 59
    assert store.get("a") is not None
    clock.now += 1
    assert store.get("a") is None
    assert len(store) == 0


def test_put_sweeps_expired_entries(store, clock):
    store.put(_record("old"))
    clock.now += 120
    store.put(_record("new"))
    assert len(store) == 1
    assert store.get("new") is not None


def test_zero_ttl_disables_expiry(clock):
    store = InMemoryStatusStore(ttl_seconds=0, clock=clock)
    store.put(_record("a"))
    clock.now += 10 ** 9
    assert store.get("a") is not None


def test_delete_and_clear(store):
    store.put(_record("a"))
    store.put(_record("b"))
    assert store.delete("a") is True
    assert store.delete("a") is False
    store.clear()
    assert len(store) == 0


def test_default_dependency_is_shared_store():
    assert isinstance(get_status_store(), StatusStore)
    assert get_status_store() is get_status_store()


def test_store_interface_is_abstract():
    with pytest.raises(TypeError):
        StatusStore()


def test_default_record_is_not_stored(store):
    default_record("ghost")
    assert store.get("ghost") is None

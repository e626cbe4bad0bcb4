import asyncio
import json

import pytest

from ipguard.services.ip_block.storage import JsonFileStore, bootstrap_from_template


@pytest.mark.asyncio
async def test_load_missing_file_returns_none(tmp_path):
    store = JsonFileStore(tmp_path / "missing.json")

    assert await store.load() is None


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["{broken", "[]", "42", ""])
async def test_load_malformed_file_returns_none(tmp_path, content):
    path = tmp_path / "doc.json"
    path.write_text(content, encoding="utf-8")

    assert await JsonFileStore(path).load() is None


@pytest.mark.asyncio
async def test_save_creates_parent_dirs_and_round_trips(tmp_path):
    store = JsonFileStore(tmp_path / "nested" / "dir" / "doc.json")

    assert await store.save(lambda: {"blocked_ips": {"203.0.113.1": {"permanent": True}}}) is True

    assert await store.load() == {"blocked_ips": {"203.0.113.1": {"permanent": True}}}
    assert not list((tmp_path / "nested" / "dir").glob(".*.tmp"))


@pytest.mark.asyncio
async def test_concurrent_saves_are_serialized_and_coalesced(tmp_path, monkeypatch):
    store = JsonFileStore(tmp_path / "doc.json")
    state = {"version": 0}
    writes = []
    original_write = store._write_atomic

    def counting_write(payload):
        writes.append(json.loads(payload)["version"])
        original_write(payload)

    monkeypatch.setattr(store, "_write_atomic", counting_write)

    tasks = []
    for version in range(1, 21):
        state["version"] = version
        tasks.append(asyncio.create_task(store.save(lambda: dict(state))))

    results = await asyncio.gather(*tasks)

    assert all(results)
    assert len(writes) <= 2
    assert writes[-1] == 20
    assert json.loads((tmp_path / "doc.json").read_text(encoding="utf-8")) == {"version": 20}


@pytest.mark.asyncio
async def test_save_reflects_mutations_made_during_previous_write(tmp_path, monkeypatch):
    store = JsonFileStore(tmp_path / "doc.json")
    state = {"version": 1}
    original_write = store._write_atomic
    first_write_started = asyncio.Event()
    release_first_write = asyncio.Event()
    loop = asyncio.get_running_loop()

    def slow_write(payload):
        if json.loads(payload)["version"] == 1:
            loop.call_soon_threadsafe(first_write_started.set)
            asyncio.run_coroutine_threadsafe(release_first_write.wait(), loop).result()
        original_write(payload)

    monkeypatch.setattr(store, "_write_atomic", slow_write)

    first = asyncio.create_task(store.save(lambda: dict(state)))
    await first_write_started.wait()

    state["version"] = 2
    second = asyncio.create_task(store.save(lambda: dict(state)))
    await asyncio.sleep(0)
    release_first_write.set()

    assert await first is True
    assert await second is True
    assert json.loads((tmp_path / "doc.json").read_text(encoding="utf-8")) == {"version": 2}


@pytest.mark.asyncio
async def test_save_failure_is_logged_not_raised(tmp_path):
    target = tmp_path / "occupied"
    target.mkdir()
    store = JsonFileStore(target)

    assert await store.save(lambda: {"a": 1}) is False
    await store.flush()


def test_bootstrap_copies_template_once(tmp_path):
    template = tmp_path / "security.json.example"
    target = tmp_path / "security.json"
    template.write_text('{"blocking": {"enabled": false}}', encoding="utf-8")

    assert bootstrap_from_template(target, template) is True
    assert json.loads(target.read_text(encoding="utf-8")) == {"blocking": {"enabled": False}}

    template.write_text('{"blocking": {"enabled": true}}', encoding="utf-8")
    assert bootstrap_from_template(target, template) is False
    assert json.loads(target.read_text(encoding="utf-8")) == {"blocking": {"enabled": False}}


def test_bootstrap_without_template_is_noop(tmp_path):
    target = tmp_path / "security.json"

    assert bootstrap_from_template(target, tmp_path / "absent.example") is False
    assert not target.exists()

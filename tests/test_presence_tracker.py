import asyncio
import logging
from typing import Any

from farmrelay.schemas.printer import PrinterRecord
from farmrelay.services.presence_tracker import PresenceTracker
from tests.fakes import InMemoryPresenceStore


def _tracker(store: InMemoryPresenceStore) -> tuple[PresenceTracker, list[dict[str, Any]]]:
    emitted: list[dict[str, Any]] = []

    async def emit(payload: dict[str, Any]) -> None:
        emitted.append(payload)

    return PresenceTracker(store, emit), emitted


def _seed(store: InMemoryPresenceStore, address: str, host_id: str, **kw: Any) -> None:
    store.printers[address] = PrinterRecord(remote_address=address, host_id=host_id, **kw)


class TestHostLifecycle:
    def test_connect_writes_online_host(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)

        asyncio.run(tracker.host_connect("H1"))

        host = store.hosts["H1"]
        assert host.online is True
        assert host.connected_at is not None
        assert emitted == []

    def test_disconnect_removes_host_and_sweeps_printers(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)
        for addr in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
            _seed(store, addr, "H1", online=True, status={"type": "Printing"})
        _seed(store, "10.0.0.9", "H2", online=True, status={"type": "Online"})

        async def run():
            await tracker.host_connect("H1")
            return await tracker.host_disconnect("H1")

        result = asyncio.run(run())

        assert "H1" not in store.hosts
        assert len(emitted) == 3
        assert result == emitted
        assert {p["remoteAddress"] for p in emitted} == {"10.0.0.1", "10.0.0.2", "10.0.0.3"}
        for payload in emitted:
            assert payload["online"] is False
            assert payload["status"] == {"type": "Offline"}
            assert payload["connectedAt"] is None
            assert payload["hostId"] == "H1"
        for addr in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
            assert store.printers[addr].online is False
            assert store.printers[addr].status == {"type": "Offline"}
        # other hosts' printers are untouched
        assert store.printers["10.0.0.9"].online is True

    def test_disconnect_keeps_going_when_one_printer_write_fails(self, caplog):
        store = InMemoryPresenceStore(latency=0.001)
        tracker, emitted = _tracker(store)
        for addr in ("10.0.0.1", "10.0.0.2", "10.0.0.3"):
            _seed(store, addr, "H1", online=True, status={"type": "Online"})
        store.fail_addresses.add("10.0.0.2")

        with caplog.at_level(logging.ERROR):
            asyncio.run(tracker.host_disconnect("H1"))

        assert len(emitted) == 3
        assert all(p["online"] is False for p in emitted)
        assert store.printers["10.0.0.1"].online is False
        assert store.printers["10.0.0.3"].online is False
        assert store.printers["10.0.0.2"].online is True  # write failed
        assert "10.0.0.2" in caplog.text

    def test_disconnect_without_printers_emits_nothing(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)
        asyncio.run(tracker.host_disconnect("ghost"))
        assert emitted == []

    def test_disconnect_when_printer_listing_fails(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)
        _seed(store, "10.0.0.1", "H1", online=True, status={"type": "Online"})
        store.hosts.clear()
        store.fail_ops.add("list_printers_for_host")

        assert asyncio.run(tracker.host_disconnect("H1")) == []
        assert emitted == []

    def test_clear_hosts(self):
        store = InMemoryPresenceStore()
        tracker, _ = _tracker(store)

        async def run():
            await tracker.host_connect("H1")
            await tracker.host_connect("H2")
            return await tracker.clear_hosts()

        assert asyncio.run(run()) == 2
        assert store.hosts == {}

    def test_clear_hosts_store_down(self):
        store = InMemoryPresenceStore()
        store.fail_ops.add("clear_hosts")
        tracker, _ = _tracker(store)
        assert asyncio.run(tracker.clear_hosts()) == 0


class TestPrinterTransitions:
    def test_online_inserts_with_default_metadata(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)

        asyncio.run(tracker.printer_online("10.0.0.5", "H1"))

        record = store.printers["10.0.0.5"]
        assert record.online is True
        assert record.status == {"type": "Online"}
        assert record.host_id == "H1"
        assert record.connected_at is not None
        assert record.friendly_name == ""
        assert record.loaded_filament is None

        assert len(emitted) == 1
        payload = emitted[0]
        assert payload["remoteAddress"] == "10.0.0.5"
        assert payload["hostId"] == "H1"
        assert payload["online"] is True
        assert payload["status"] == {"type": "Online"}
        assert isinstance(payload["connectedAt"], str)

    def test_online_update_keeps_user_metadata(self):
        store = InMemoryPresenceStore()
        tracker, _ = _tracker(store)
        _seed(store, "10.0.0.5", "H0", friendly_name="Prusa", loaded_filament={"type": "PLA"})

        asyncio.run(tracker.printer_online("10.0.0.5", "H1"))

        record = store.printers["10.0.0.5"]
        assert record.host_id == "H1"
        assert record.online is True
        assert record.friendly_name == "Prusa"
        assert record.loaded_filament == {"type": "PLA"}

    def test_online_then_offline(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)

        async def run():
            await tracker.printer_online("10.0.0.5", "H1")
            await tracker.printer_offline("10.0.0.5", "H1")

        asyncio.run(run())

        record = store.printers["10.0.0.5"]
        assert record.online is False
        assert record.status["type"] == "Offline"
        assert record.connected_at is None
        assert [p["online"] for p in emitted] == [True, False]

    def test_offline_for_unknown_printer_creates_it(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)

        asyncio.run(tracker.printer_offline("10.0.0.7", "H1"))

        assert store.printers["10.0.0.7"].online is False
        assert store.printers["10.0.0.7"].friendly_name == ""
        assert emitted[0]["status"] == {"type": "Offline"}

    def test_status_for_unknown_printer_is_a_noop(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)

        result = asyncio.run(tracker.printer_status(
            "10.0.0.5", {"remoteAddress": "10.0.0.5", "type": "printer", "status": {"type": "Printing"}},
        ))

        assert result is None
        assert store.writes == []
        assert store.printers == {}
        assert emitted == []

    def test_status_updates_only_status_and_relays_full_payload(self):
        store = InMemoryPresenceStore()
        tracker, emitted = _tracker(store)
        _seed(store, "10.0.0.5", "H1", online=True, status={"type": "Online"}, friendly_name="Ender")
        inbound = {
            "remoteAddress": "10.0.0.5",
            "type": "printer",
            "status": {"type": "Printing", "progress": 0.42},
            "job": "benchy.gcode",
        }

        asyncio.run(tracker.printer_status("10.0.0.5", inbound))

        record = store.printers["10.0.0.5"]
        assert record.status == {"type": "Printing", "progress": 0.42}
        assert record.online is True
        assert record.friendly_name == "Ender"
        assert emitted == [inbound]

    def test_online_still_emits_when_store_is_down(self, caplog):
        store = InMemoryPresenceStore()
        store.fail_ops.add("get_printer")
        tracker, emitted = _tracker(store)

        with caplog.at_level(logging.ERROR):
            asyncio.run(tracker.printer_online("10.0.0.5", "H1"))

        assert store.printers == {}
        assert len(emitted) == 1
        assert emitted[0]["online"] is True
        assert "10.0.0.5" in caplog.text

    def test_status_relays_when_read_fails(self):
        store = InMemoryPresenceStore()
        store.fail_ops.add("get_printer")
        tracker, emitted = _tracker(store)
        inbound = {"remoteAddress": "10.0.0.5", "type": "printer", "status": {"type": "Idle"}}

        asyncio.run(tracker.printer_status("10.0.0.5", inbound))

        assert emitted == [inbound]
        assert store.writes == []

    def test_host_connect_survives_store_failure(self):
        store = InMemoryPresenceStore()
        store.fail_ops.add("upsert_host")
        tracker, _ = _tracker(store)
        asyncio.run(tracker.host_connect("H1"))
        assert store.hosts == {}

    def test_interleaved_transitions_last_write_wins(self):
        store = InMemoryPresenceStore(latency=0.001)
        tracker, emitted = _tracker(store)
        _seed(store, "10.0.0.5", "H1", online=True, status={"type": "Online"})

        async def run():
            await asyncio.gather(
                tracker.printer_offline("10.0.0.5", "H1"),
                tracker.printer_online("10.0.0.5", "H1"),
            )

        asyncio.run(run())

        assert len(emitted) == 2
        assert {p["online"] for p in emitted} == {True, False}
        # the transition that wrote last is also the one that emitted last
        assert store.printers["10.0.0.5"].online is emitted[-1]["online"]

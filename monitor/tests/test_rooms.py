"""
Unit tests for the room load totalizer and household reading.

Tests verify:
- A room's load is the sum of its running devices.
- Devices run until switched off; toggle flips state.
- Unknown devices raise KeyError.
- The household reading is baseline + all room loads, computed live.
- Toggle state is persisted per room and restored on startup.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-106)

TODO:
- None
"""

import json
import logging

import pytest
from monitor.src.rooms import DEFAULT_BASELINE_KW, Device, Household, Room
from monitor.src.store import KeyValueStore


def _garage() -> Room:
    return Room(
        "Garage",
        [
            Device("Battery", 0.5),
            Device("Power Tools", 1.2),
            Device("EV Charger", 2.5),
        ],
    )


class TestRoom:
    """Room totals follow device switches."""

    def test_all_devices_running_by_default(self) -> None:
        """A fresh room counts every device."""
        assert _garage().total_load() == pytest.approx(4.2)

    def test_toggle_off_removes_device_load(self) -> None:
        """Switching a device off drops its load."""
        room = _garage()

        assert room.toggle("EV Charger") is False
        assert room.total_load() == pytest.approx(1.7)

    def test_toggle_twice_restores_load(self) -> None:
        """Toggling back on restores the load."""
        room = _garage()
        room.toggle("Battery")

        assert room.toggle("Battery") is True
        assert room.total_load() == pytest.approx(4.2)

    def test_all_off_is_zero(self) -> None:
        """A room with every device off draws nothing."""
        room = _garage()
        for name in room.devices:
            room.set_running(name, False)
        assert room.total_load() == 0

    def test_unknown_device_raises(self) -> None:
        """Toggling a device the room does not have raises KeyError."""
        with pytest.raises(KeyError, match="Toaster"):
            _garage().toggle("Toaster")


class TestHousehold:
    """Household reading combines baseline and rooms."""

    def test_reading_is_baseline_plus_rooms(self) -> None:
        """current_reading = baseline + sum of room loads."""
        household = Household([_garage()], baseline_kw=1.5)
        assert household.current_reading() == pytest.approx(5.7)

    def test_reading_is_evaluated_live(self) -> None:
        """A toggle is visible in the very next reading."""
        household = Household([_garage()], baseline_kw=0.0)
        household.room("Garage").set_running("Power Tools", False)

        assert household.current_reading() == pytest.approx(3.0)

    def test_default_catalog(self) -> None:
        """The built-in catalog has living, laundry and garage rooms."""
        household = Household()

        assert [room.name for room in household.rooms] == [
            "Living",
            "Laundry",
            "Garage",
        ]
        assert household.baseline_kw == DEFAULT_BASELINE_KW
        totals = household.room_totals()
        assert totals["Living"] == pytest.approx(2.9)
        assert totals["Laundry"] == pytest.approx(5.1)
        assert totals["Garage"] == pytest.approx(4.2)

    def test_default_catalog_not_shared(self) -> None:
        """Two households do not share room state."""
        first = Household()
        second = Household()
        first.room("Garage").set_running("EV Charger", False)

        assert second.room("Garage").is_running("EV Charger") is True


class TestRoomStatePersistence:
    """Room toggle state survives restarts."""

    @pytest.mark.asyncio()
    async def test_toggle_is_persisted(self, store: KeyValueStore) -> None:
        """toggle() writes the room's running map through."""
        household = Household([_garage()])
        await household.load_state(store)

        await household.toggle("Garage", "EV Charger")

        assert json.loads(store.get("@runningDevicesGarage")) == {
            "EV Charger": False
        }

    @pytest.mark.asyncio()
    async def test_toggle_before_load_warns(
        self, store: KeyValueStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Without load_state() the toggle applies but is reported unsaved."""
        household = Household([_garage()], baseline_kw=0.0)

        with caplog.at_level(logging.WARNING):
            assert await household.toggle("Garage", "EV Charger") is False

        assert household.current_reading() == pytest.approx(1.7)
        assert store.get("@runningDevicesGarage") is None
        assert "not persisted" in caplog.text

    @pytest.mark.asyncio()
    async def test_state_restored_on_load(self, store: KeyValueStore) -> None:
        """A new household picks up the stored toggle state."""
        store.set("@runningDevicesGarage", json.dumps({"EV Charger": False}))

        household = Household([_garage()], baseline_kw=0.0)
        await household.load_state(store)

        assert household.current_reading() == pytest.approx(1.7)

    @pytest.mark.asyncio()
    async def test_unknown_devices_in_state_ignored(
        self, store: KeyValueStore
    ) -> None:
        """Stored entries for devices the room no longer has are dropped."""
        store.set(
            "@runningDevicesGarage",
            json.dumps({"Freezer": False, "Battery": False}),
        )

        household = Household([_garage()])
        await household.load_state(store)

        assert household.room("Garage").running == {"Battery": False}

    @pytest.mark.asyncio()
    async def test_malformed_state_ignored(self, store: KeyValueStore) -> None:
        """A stored non-dict value leaves every device running."""
        store.set("@runningDevicesGarage", json.dumps([1, 2]))

        household = Household([_garage()], baseline_kw=0.0)
        await household.load_state(store)

        assert household.current_reading() == pytest.approx(4.2)

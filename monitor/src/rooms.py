"""
Room load totalizer, the sample source for the aggregator.

Each room owns a fixed set of devices with a nominal power draw and a
map of which devices are running. A room's load is the sum of the power
of its running devices; the household reading is a baseline load plus
the load of every room. Readings are computed on demand from the current
toggle state and never cached.

Device toggle state is persisted per room (``@runningDevices<Room>``)
and written through on every toggle.

CHANGELOG:
- 2026-10-19: Initial creation (STORY-106)
- 2026-10-19: Warn when a toggle cannot be persisted (STORY-112)

TODO:
- None
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from monitor.src.persistence import PersistedSlice
from monitor.src.store import KeyValueStore

logger = logging.getLogger(__name__)

_STATE_KEY_PREFIX = "@runningDevices"


@dataclass(frozen=True)
class Device:
    """A switchable appliance with a nominal power draw in kW."""

    name: str
    power_kw: float


class Room:
    """A named group of devices, each either running or off.

    Devices are running unless explicitly switched off.

    Args:
        name: Room name (e.g. ``"Garage"``).
        devices: Devices located in the room.
    """

    def __init__(self, name: str, devices: Iterable[Device]) -> None:
        self.name = name
        self.devices: dict[str, Device] = {d.name: d for d in devices}
        self.running: dict[str, bool] = {}

    def is_running(self, device_name: str) -> bool:
        self._require(device_name)
        return self.running.get(device_name, True)

    def set_running(self, device_name: str, on: bool) -> None:
        self._require(device_name)
        self.running[device_name] = on

    def toggle(self, device_name: str) -> bool:
        """Flip a device on/off and return its new state."""
        on = not self.is_running(device_name)
        self.running[device_name] = on
        return on

    def total_load(self) -> float:
        """Sum of the power of all running devices, in kW."""
        return sum(
            device.power_kw
            for name, device in self.devices.items()
            if self.running.get(name, True)
        )

    def _require(self, device_name: str) -> None:
        if device_name not in self.devices:
            raise KeyError(f"Room '{self.name}' has no device '{device_name}'")


def _default_rooms() -> list[Room]:
    return [
        Room(
            "Living",
            [
                Device("TV", 0.4),
                Device("Lamp", 0.1),
                Device("Gaming", 0.2),
                Device("Sound", 0.3),
                Device("AC", 1.8),
                Device("Light", 0.1),
            ],
        ),
        Room(
            "Laundry",
            [
                Device("Wash Machine", 1.0),
                Device("Dryer", 2.0),
                Device("Iron", 0.8),
                Device("Steam Press", 0.7),
                Device("Steamer", 0.5),
                Device("Light", 0.1),
            ],
        ),
        Room(
            "Garage",
            [
                Device("Battery", 0.5),
                Device("Power Tools", 1.2),
                Device("EV Charger", 2.5),
            ],
        ),
    ]


DEFAULT_BASELINE_KW = 1.5


class Household:
    """All rooms of the home plus an always-on baseline load.

    Args:
        rooms: Rooms to totalize. Defaults to the built-in catalog.
        baseline_kw: Load that is always present, in kW.
    """

    def __init__(
        self,
        rooms: Iterable[Room] | None = None,
        baseline_kw: float = DEFAULT_BASELINE_KW,
    ) -> None:
        self._rooms: dict[str, Room] = {
            room.name: room
            for room in (_default_rooms() if rooms is None else rooms)
        }
        self.baseline_kw = baseline_kw
        self._slices: dict[str, PersistedSlice] = {}

    @property
    def rooms(self) -> list[Room]:
        return list(self._rooms.values())

    def room(self, name: str) -> Room:
        return self._rooms[name]

    def room_totals(self) -> dict[str, float]:
        return {name: room.total_load() for name, room in self._rooms.items()}

    def current_reading(self) -> float:
        """Instantaneous household consumption in kW."""
        return self.baseline_kw + sum(
            room.total_load() for room in self._rooms.values()
        )

    async def load_state(self, store: KeyValueStore) -> None:
        """Restore every room's toggle state from *store*.

        Unreadable state, and entries naming devices a room does not have,
        are ignored.
        """
        for room in self._rooms.values():
            state = PersistedSlice(store, f"{_STATE_KEY_PREFIX}{room.name}", {})
            saved = await state.load()
            if not isinstance(saved, dict):
                logger.warning("Ignoring malformed state for room %s", room.name)
                saved = {}
            room.running = {
                name: bool(on)
                for name, on in saved.items()
                if name in room.devices
            }
            self._slices[room.name] = state

    async def toggle(self, room_name: str, device_name: str) -> bool:
        """Toggle a device and persist the room's new state.

        Returns:
            The device's new running state.
        """
        room = self._rooms[room_name]
        on = room.toggle(device_name)
        state = self._slices.get(room_name)
        if state is None:
            logger.warning(
                "Toggle of %s / %s not persisted: room state was never loaded",
                room_name,
                device_name,
            )
        else:
            await state.update(dict(room.running))
        logger.info(
            "%s / %s switched %s (room load %.2f kW)",
            room_name,
            device_name,
            "on" if on else "off",
            room.total_load(),
        )
        return on

"""Pod, container and adjustment types used by runtime-attached plugins."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Any


class Event(enum.IntEnum):
    """Pod and container lifecycle events a plugin can subscribe to."""

    RUN_POD_SANDBOX = 1
    STOP_POD_SANDBOX = 2
    REMOVE_POD_SANDBOX = 3
    CREATE_CONTAINER = 4
    POST_CREATE_CONTAINER = 5
    START_CONTAINER = 6
    POST_START_CONTAINER = 7
    UPDATE_CONTAINER = 8
    POST_UPDATE_CONTAINER = 9
    STOP_CONTAINER = 10
    REMOVE_CONTAINER = 11


class EventMask(enum.IntFlag):
    """A set of subscribed events."""

    RUN_POD_SANDBOX = 1 << 0
    STOP_POD_SANDBOX = 1 << 1
    REMOVE_POD_SANDBOX = 1 << 2
    CREATE_CONTAINER = 1 << 3
    POST_CREATE_CONTAINER = 1 << 4
    START_CONTAINER = 1 << 5
    POST_START_CONTAINER = 1 << 6
    UPDATE_CONTAINER = 1 << 7
    POST_UPDATE_CONTAINER = 1 << 8
    STOP_CONTAINER = 1 << 9
    REMOVE_CONTAINER = 1 << 10
    ALL = (1 << 11) - 1


_EVENTS_BY_NAME = {
    "".join(part.capitalize() for part in event.name.split("_")).lower(): event
    for event in Event
}


def parse_event_mask(*args: str) -> EventMask:
    """Parse comma-separated event names (or "all") into an event mask."""
    mask = EventMask(0)
    for arg in args:
        for token in arg.split(","):
            token = token.strip()
            if not token:
                continue
            key = token.lower()
            if key == "all":
                mask |= EventMask.ALL
                continue
            event = _EVENTS_BY_NAME.get(key)
            if event is None:
                raise ValueError(f"invalid event {token!r}")
            mask |= EventMask[event.name]
    return mask


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        out = {}
        for item in dataclasses.fields(value):
            converted = _plain(getattr(value, item.name))
            if converted:
                out[item.name] = converted
        return out
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    return value


@dataclass
class LinuxNamespace:
    """A Linux namespace of a pod or container."""

    type: str = ""
    path: str = ""


@dataclass
class LinuxContainer:
    """Linux-specific settings of a pod or container."""

    namespaces: list[LinuxNamespace] = field(default_factory=list)
    resources: dict[str, Any] | None = None
    cgroups_path: str = ""


@dataclass
class PodSandbox:
    """A pod sandbox as seen by plugins."""

    id: str = ""
    name: str = ""
    uid: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    linux: LinuxContainer | None = None
    pid: int = 0

    def to_dict(self) -> dict:
        return _plain(self)


@dataclass
class Mount:
    """A mount of a container."""

    destination: str = ""
    type: str = ""
    source: str = ""
    options: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return _plain(self)


@dataclass
class Container:
    """A container as seen by plugins."""

    id: str = ""
    pod_sandbox_id: str = ""
    name: str = ""
    state: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    args: list[str] = field(default_factory=list)
    env: list[str] = field(default_factory=list)
    mounts: list[Mount] = field(default_factory=list)
    linux: LinuxContainer | None = None
    pid: int = 0

    def to_dict(self) -> dict:
        return _plain(self)


@dataclass
class KeyValue:
    """A key and its value, such as an environment variable."""

    key: str = ""
    value: str = ""


@dataclass
class LinuxDevice:
    """A Linux device node to inject into a container."""

    path: str = ""
    type: str = ""
    major: int = 0
    minor: int = 0
    file_mode: int | None = None
    uid: int | None = None
    gid: int | None = None

    def to_dict(self) -> dict:
        return _plain(self)


@dataclass
class LinuxContainerAdjustment:
    """Linux-specific parts of a container adjustment."""

    devices: list[LinuxDevice] = field(default_factory=list)
    cgroups_path: str = ""


def _mark_for_removal(key: str) -> str:
    return "-" + key


@dataclass
class ContainerAdjustment:
    """Changes a plugin requests for a container being created."""

    annotations: dict[str, str] = field(default_factory=dict)
    mounts: list[Mount] = field(default_factory=list)
    env: list[KeyValue] = field(default_factory=list)
    linux: LinuxContainerAdjustment | None = None

    def _linux(self) -> LinuxContainerAdjustment:
        if self.linux is None:
            self.linux = LinuxContainerAdjustment()
        return self.linux

    def add_annotation(self, key: str, value: str) -> None:
        self.annotations[key] = value

    def remove_annotation(self, key: str) -> None:
        self.annotations[_mark_for_removal(key)] = ""

    def add_env(self, key: str, value: str) -> None:
        self.env.append(KeyValue(key=key, value=value))

    def remove_env(self, key: str) -> None:
        self.env.append(KeyValue(key=_mark_for_removal(key)))

    def add_mount(self, mount: Mount) -> None:
        self.mounts.append(dataclasses.replace(mount, options=list(mount.options)))

    def add_device(self, device: LinuxDevice) -> None:
        self._linux().devices.append(dataclasses.replace(device))

    def set_linux_cgroups_path(self, path: str) -> None:
        self._linux().cgroups_path = path

    def to_dict(self) -> dict:
        return _plain(self)
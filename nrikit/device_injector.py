"""Plugin that injects devices and mounts described in pod annotations."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from nrikit.api import Container, ContainerAdjustment, LinuxDevice, Mount, PodSandbox
from nrikit.dump import dump

DEVICE_KEY = "devices.nri.io"
MOUNT_KEY = "mounts.nri.io"

_INT64 = (-(2**63), 2**63 - 1)
_UINT32 = (0, 2**32 - 1)


class AnnotationError(ValueError):
    """An annotation holds a description that cannot be decoded."""


def _lookup(data: Mapping[Any, Any], key: str) -> tuple[bool, Any]:
    if key in data:
        return True, data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return True, value
    return False, None


def _str_field(data: Mapping[Any, Any], key: str) -> str:
    found, value = _lookup(data, key)
    if not found or value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string, got {type(value).__name__}")
    return value


def _int_field(data: Mapping[Any, Any], key: str, bounds: tuple[int, int]) -> int:
    found, value = _lookup(data, key)
    if not found or value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r}: expected an integer, got {type(value).__name__}")
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"field {key!r}: value {value} out of range")
    return value


def _str_list_field(data: Mapping[Any, Any], key: str) -> list[str]:
    found, value = _lookup(data, key)
    if not found or value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"field {key!r}: expected a list of strings")
    return list(value)


def _require_mapping(data: Any, what: str) -> Mapping[Any, Any]:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


@dataclass
class Device:
    """A device described in an annotation."""

    path: str = ""
    type: str = ""
    major: int = 0
    minor: int = 0
    file_mode: int = 0
    uid: int = 0
    gid: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> Device:
        data = _require_mapping(data, "device")
        return cls(
            path=_str_field(data, "path"),
            type=_str_field(data, "type"),
            major=_int_field(data, "major", _INT64),
            minor=_int_field(data, "minor", _INT64),
            file_mode=_int_field(data, "file_mode", _UINT32),
            uid=_int_field(data, "uid", _UINT32),
            gid=_int_field(data, "gid", _UINT32),
        )

    def to_nri(self) -> LinuxDevice:
        """Convert to the device type used in container adjustments."""
        return LinuxDevice(
            path=self.path,
            type=self.type,
            major=self.major,
            minor=self.minor,
            file_mode=self.file_mode or None,
            uid=self.uid or None,
            gid=self.gid or None,
        )


@dataclass
class MountSpec:
    """A mount described in an annotation."""

    source: str = ""
    destination: str = ""
    type: str = ""
    options: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> MountSpec:
        data = _require_mapping(data, "mount")
        return cls(
            source=_str_field(data, "source"),
            destination=_str_field(data, "destination"),
            type=_str_field(data, "type"),
            options=_str_list_field(data, "options"),
        )

    def to_nri(self) -> Mount:
        """Convert to the mount type used in container adjustments."""
        return Mount(
            source=self.source,
            destination=self.destination,
            type=self.type,
            options=list(self.options),
        )


def _effective_annotation(
    prefix: str, ctr: str, annotations: Mapping[str, str]
) -> tuple[str, str] | None:
    for key in (f"{prefix}/container.{ctr}", f"{prefix}/pod", prefix):
        if key in annotations:
            return key, annotations[key]
    return None


def _parse_list(prefix: str, what: str, ctr: str, annotations: Mapping[str, str], build):
    found = _effective_annotation(prefix, ctr, annotations or {})
    if found is None:
        return []
    key, text = found
    try:
        data = yaml.safe_load(text)
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(f"expected a list, got {type(data).__name__}")
        return [build(item) for item in data]
    except (yaml.YAMLError, ValueError) as err:
        raise AnnotationError(f"invalid {what} annotation {key!r}: {err}") from err


def parse_devices(ctr: str, annotations: Mapping[str, str]) -> list[Device]:
    """Decode the devices annotated for the named container."""
    return _parse_list(DEVICE_KEY, "device", ctr, annotations, Device.from_dict)


def parse_mounts(ctr: str, annotations: Mapping[str, str]) -> list[MountSpec]:
    """Decode the mounts annotated for the named container."""
    return _parse_list(MOUNT_KEY, "mount", ctr, annotations, MountSpec.from_dict)


def container_name(pod: PodSandbox | None, container: Container) -> str:
    """Name a container for log messages."""
    if pod is not None:
        return f"{pod.name}/{container.name}"
    return container.name


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class DeviceInjector:
    """Injects annotated devices and mounts into containers being created."""

    def __init__(self, verbose: bool = False, logger: logging.Logger | None = None) -> None:
        self.verbose = verbose
        self.log = logger or logging.getLogger("nrikit.device_injector")

    def create_container(
        self, pod: PodSandbox | None, container: Container
    ) -> tuple[ContainerAdjustment, list]:
        ctr_name = container_name(pod, container)
        if self.verbose:
            dump(self.log, "CreateContainer", "pod", pod, "container", container)

        adjust = ContainerAdjustment()
        annotations = pod.annotations if pod is not None else {}

        devices = parse_devices(container.name, annotations)
        if not devices:
            self.log.info("%s: no devices annotated...", ctr_name)
        else:
            if self.verbose:
                dump(self.log, ctr_name, "annotated devices", devices)
            for device in devices:
                adjust.add_device(device.to_nri())
                if not self.verbose:
                    self.log.info("%s: injected device %s...", ctr_name, _quote(device.path))

        mounts = parse_mounts(container.name, annotations)
        if not mounts:
            self.log.info("%s: no mounts annotated...", ctr_name)
        else:
            if self.verbose:
                dump(self.log, ctr_name, "annotated mounts", mounts)
            for mount in mounts:
                adjust.add_mount(mount.to_nri())
                if not self.verbose:
                    self.log.info(
                        "%s: injected mount %s -> %s...",
                        ctr_name,
                        _quote(mount.source),
                        _quote(mount.destination),
                    )

        if self.verbose:
            dump(self.log, ctr_name, "ContainerAdjustment", adjust)

        return adjust, []
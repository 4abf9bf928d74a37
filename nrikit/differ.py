"""Plugin that reports the changes other plugins make between two chain positions."""

from __future__ import annotations

import collections
import copy
import dataclasses
import difflib
import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from nrikit.api import Container, ContainerAdjustment, EventMask, PodSandbox, parse_event_mask
from nrikit.dump import dump


@dataclass
class DifferConfig:
    """Configuration of the differ plugin."""

    indices: str = "0,99"
    log_file: str = ""
    verbose_level: int = 0
    yaml: bool = False


@dataclass
class Change:
    """One difference between two objects."""

    type: str
    path: list[str]
    from_: Any = None
    to: Any = None


def _plain(obj: Any) -> Any:
    if isinstance(obj, enum.Enum):
        return obj.value
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {item.name: _plain(getattr(obj, item.name)) for item in dataclasses.fields(obj)}
    if isinstance(obj, (list, tuple)):
        return [_plain(item) for item in obj]
    if isinstance(obj, dict):
        return {str(key): _plain(value) for key, value in obj.items()}
    return obj


def _diff(old: Any, new: Any, path: list[str], out: list[Change]) -> None:
    if old == new:
        return
    if old is None:
        out.append(Change("create", path, None, new))
        return
    if new is None:
        out.append(Change("delete", path, old, None))
        return
    if isinstance(old, dict) and isinstance(new, dict):
        for key, value in old.items():
            if key not in new:
                out.append(Change("delete", path + [key], value, None))
            else:
                _diff(value, new[key], path + [key], out)
        for key, value in new.items():
            if key not in old:
                out.append(Change("create", path + [key], None, value))
        return
    if isinstance(old, list) and isinstance(new, list):
        for position, value in enumerate(old):
            if value not in new:
                out.append(Change("delete", path + [str(position)], value, None))
        for position, value in enumerate(new):
            if value not in old:
                out.append(Change("create", path + [str(position)], None, value))
        return
    out.append(Change("update", path, old, new))


def diff_objects(old: Any, new: Any) -> list[Change]:
    """List the changes that turn old into new."""
    changes: list[Change] = []
    _diff(_plain(old), _plain(new), [], changes)
    return changes


def _to_yaml(obj: Any) -> str:
    return yaml.safe_dump(_plain(obj), default_flow_style=False, sort_keys=True)


def yaml_diff(old: Any, new: Any) -> str:
    """Return a line diff of the YAML forms of two objects, or "" if they match."""
    old_text = _to_yaml(old)
    new_text = _to_yaml(new)
    if old_text == new_text:
        return ""
    lines = difflib.ndiff(old_text.splitlines(), new_text.splitlines())
    return "\n".join(line for line in lines if not line.startswith("? "))


@dataclass
class _ChangedValue:
    pod: PodSandbox | None = None
    container: Container | None = None


@dataclass
class _IndexEntry:
    prev_index: int = -1
    next_index: int = 0
    values: collections.deque = field(default_factory=collections.deque)


class IndexChain:
    """The chain of plugin indices and the values each passes to the next."""

    def __init__(self) -> None:
        self.entries: dict[int, _IndexEntry] = {}

    def save(self, idx: int, pod: PodSandbox | None, container: Container | None) -> None:
        """Queue copies of the pod and container seen at idx for the next index."""
        self.entries[idx].values.append(
            _ChangedValue(pod=copy.deepcopy(pod), container=copy.deepcopy(container))
        )

    def take_previous(self, idx: int) -> _ChangedValue:
        """Remove and return the oldest value queued by the index before idx."""
        try:
            prev = self.entries[idx].prev_index
            return self.entries[prev].values.popleft()
        except (KeyError, IndexError) as err:
            raise LookupError(f"no value queued before index {idx}") from err


_INT_RE = re.compile(r"[+-]?\d+")


def _atoi(text: str) -> int:
    return int(text) if _INT_RE.fullmatch(text) else 0


def parse_indices(text: str) -> IndexChain:
    """Build the index chain from a comma-separated list of indices."""
    if "," not in text:
        raise ValueError("There must be at least two index given.")
    chain = IndexChain()
    prev_index = -1
    for part in text.split(","):
        idx = _atoi(part)
        entry = chain.entries.setdefault(idx, _IndexEntry())
        entry.prev_index = prev_index
        entry.values = collections.deque()
        if prev_index >= 0 and prev_index in chain.entries:
            chain.entries[prev_index].next_index = idx
        prev_index = idx
    chain.entries[prev_index].next_index = -1
    return chain


def _lookup(data: Mapping[Any, Any], key: str) -> tuple[bool, Any]:
    if key in data:
        return True, data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return True, value
    return False, None


def _go_value(value: Any) -> str:
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class DifferPlugin:
    """One differ instance installed at a given index of the chain."""

    def __init__(
        self,
        chain: IndexChain,
        idx: int,
        config: DifferConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.chain = chain
        self.idx = idx
        self.name = f"[{idx:02d}]"
        self.config = config if config is not None else DifferConfig()
        self.mask = parse_event_mask("all")
        self.log = logger or logging.getLogger("nrikit.differ")
        self._file_handler: logging.FileHandler | None = None

    def _open_log_file(self, path: str) -> None:
        try:
            if not path:
                raise OSError("empty file name")
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as err:
            self.log.error("failed to open log file %r: %s", path, err)
            raise ValueError(f"failed to open log file {path!r}: {err}") from err
        if self._file_handler is not None:
            self.log.removeHandler(self._file_handler)
            self._file_handler.close()
        self._file_handler = handler
        self.log.addHandler(handler)

    def configure(self, config: str) -> EventMask:
        self.log.info("got configuration data: %r", config)
        if not config:
            return self.mask

        try:
            data = yaml.safe_load(config)
        except yaml.YAMLError as err:
            raise ValueError(f"failed to parse provided configuration: {err}") from err
        if data is not None and not isinstance(data, dict):
            raise ValueError("failed to parse provided configuration: not a mapping")

        values: dict[str, Any] = {}
        for key, attr, kind in (
            ("indices", "indices", str),
            ("logFile", "log_file", str),
            ("verboseLevel", "verbose_level", int),
            ("yaml", "yaml", bool),
        ):
            found, value = _lookup(data or {}, key)
            if not found or value is None:
                continue
            if kind is int and isinstance(value, bool) or not isinstance(value, kind):
                raise ValueError(
                    f"failed to parse provided configuration: {key} must be {kind.__name__}"
                )
            values[attr] = value

        old_log_file = self.config.log_file
        for attr, value in values.items():
            setattr(self.config, attr, value)
        self.mask = parse_event_mask("all")

        if self.config.log_file != old_log_file:
            self._open_log_file(self.config.log_file)

        return self.mask

    def _dump(self, *args: Any) -> None:
        dump(self.log, *args, name=self.name)

    def _print_diff(
        self, apifunc: str, changes: list[Change], obj: str, orig: Any, changed: Any
    ) -> None:
        if self.config.verbose_level > 1:
            self.log.info("[%d] Original values for %s", self.idx, obj)
            self._dump(apifunc, obj, orig)

        if not changes:
            self.log.info("[%d] %s: %s: %s", self.idx, apifunc, obj, "<no changes>")
            return

        for item in changes:
            self.log.info(
                "[%d] %s: %s: %s: [%s]: From: %s -> To: %s",
                self.idx,
                apifunc,
                obj,
                item.type,
                " ".join(item.path),
                _go_value(item.from_),
                _go_value(item.to),
            )

        if self.config.verbose_level > 1:
            self.log.info("[%d] Values after changes for %s", self.idx, obj)
            self._dump(apifunc, obj, changed)

    def _print_yaml_diff(self, apifunc: str, obj: str, orig: Any, changed: Any) -> None:
        text = yaml_diff(orig, changed)
        if not text:
            self.log.info("[%d] %s: %s: %s", self.idx, apifunc, obj, "<no changes>")
        else:
            self.log.info("[%d] %s: %s: %s", self.idx, apifunc, obj, text)

    def _report(self, apifunc: str, obj: str, orig: Any, changed: Any) -> None:
        if self.config.yaml:
            self._print_yaml_diff(apifunc, obj, orig, changed)
        else:
            self._print_diff(apifunc, diff_objects(orig, changed), obj, orig, changed)

    def differ(
        self, apifunc: str, pod: PodSandbox | None, container: Container | None
    ) -> None:
        """Compare what this index sees with what the previous index saw."""
        entry = self.chain.entries[self.idx]
        if entry.prev_index < 0:
            if self.config.verbose_level > 0:
                if container is not None:
                    self._dump(apifunc, "pod", pod, "container", container)
                else:
                    self._dump(apifunc, "pod", pod)
            self.chain.save(self.idx, pod, container)
            return

        initial = self.chain.take_previous(self.idx)
        if pod is not None and initial.pod is not None:
            self._report(apifunc, "pod", initial.pod, pod)
        if container is not None and initial.container is not None:
            self._report(apifunc, "container", initial.container, container)

        if entry.next_index > 0:
            self.chain.save(self.idx, pod, container)

    def synchronize(self, pods: list[PodSandbox], containers: list[Container]) -> list:
        if self.config.verbose_level > 2:
            self._dump("Synchronize", "pods", pods, "containers", containers)
        return []

    def shutdown(self) -> None:
        self._dump("Shutdown")

    def run_pod_sandbox(self, pod: PodSandbox) -> None:
        self.differ("RunPodSandbox", pod, None)

    def stop_pod_sandbox(self, pod: PodSandbox) -> None:
        self.differ("StopPodSandbox", pod, None)

    def remove_pod_sandbox(self, pod: PodSandbox) -> None:
        self.differ("RemovePodSandbox", pod, None)

    def create_container(
        self, pod: PodSandbox, container: Container
    ) -> tuple[ContainerAdjustment, list]:
        self.differ("CreateContainer", pod, container)
        return ContainerAdjustment(), []

    def post_create_container(self, pod: PodSandbox, container: Container) -> None:
        self.differ("PostCreateContainer", pod, container)

    def start_container(self, pod: PodSandbox, container: Container) -> None:
        self.differ("StartContainer", pod, container)

    def post_start_container(self, pod: PodSandbox, container: Container) -> None:
        self.differ("PostStartContainer", pod, container)

    def update_container(self, pod: PodSandbox, container: Container, resources: Any) -> list:
        self.differ("UpdateContainer", pod, container)
        return []

    def post_update_container(self, pod: PodSandbox, container: Container) -> None:
        self.differ("PostUpdateContainer", pod, container)

    def stop_container(self, pod: PodSandbox, container: Container) -> list:
        self.differ("StopContainer", pod, container)
        return []

    def remove_container(self, pod: PodSandbox, container: Container) -> None:
        self.differ("RemoveContainer", pod, container)
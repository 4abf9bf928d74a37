"""Plugin that logs every event and optionally tags created containers."""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

from nrikit.api import Container, ContainerAdjustment, EventMask, PodSandbox, parse_event_mask
from nrikit.dump import dump


class ConfigError(ValueError):
    """The plugin configuration cannot be applied."""


_FIELDS = {
    "logFile": "log_file",
    "events": "events",
    "addAnnotation": "add_annotation",
    "setAnnotation": "set_annotation",
    "addEnv": "add_env",
    "setEnv": "set_env",
}


def _lookup(data: Mapping[Any, Any], key: str) -> tuple[bool, Any]:
    if key in data:
        return True, data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return True, value
    return False, None


@dataclass
class LoggerConfig:
    """Configuration of the logger plugin."""

    log_file: str = ""
    events: list[str] = field(default_factory=list)
    add_annotation: str = ""
    set_annotation: str = ""
    add_env: str = ""
    set_env: str = ""

    @classmethod
    def from_yaml(cls, text: str) -> LoggerConfig:
        """Build a configuration from YAML text."""
        return cls()._merged(text)

    def _merged(self, text: str) -> LoggerConfig:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as err:
            raise ConfigError(f"failed to parse provided configuration: {err}") from err
        if data is None:
            return dataclasses.replace(self, events=list(self.events))
        if not isinstance(data, dict):
            raise ConfigError("failed to parse provided configuration: not a mapping")

        values: dict[str, Any] = {}
        for key, attr in _FIELDS.items():
            found, value = _lookup(data, key)
            if not found or value is None:
                continue
            if attr == "events":
                if not isinstance(value, list) or not all(isinstance(i, str) for i in value):
                    raise ConfigError(
                        "failed to parse provided configuration: events must be a list of strings"
                    )
                values[attr] = list(value)
            else:
                if not isinstance(value, str):
                    raise ConfigError(
                        f"failed to parse provided configuration: {key} must be a string"
                    )
                values[attr] = value
        values.setdefault("events", list(self.events))
        return dataclasses.replace(self, **values)


class LoggerPlugin:
    """Logs pods and containers for each event and tags containers on creation."""

    def __init__(
        self,
        config: LoggerConfig | None = None,
        events: str = "all",
        logger: logging.Logger | None = None,
    ) -> None:
        self.log = logger or logging.getLogger("nrikit.logger")
        self.mask = parse_event_mask(events)
        self.config = config if config is not None else LoggerConfig()
        self.config.events = events.split(",")
        self._file_handler: logging.FileHandler | None = None
        if self.config.log_file:
            self._open_log_file(self.config.log_file)

    def _open_log_file(self, path: str) -> None:
        try:
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as err:
            self.log.error("failed to open log file %r: %s", path, err)
            raise ConfigError(f"failed to open log file {path!r}: {err}") from err
        if self._file_handler is not None:
            self.log.removeHandler(self._file_handler)
            self._file_handler.close()
        self._file_handler = handler
        self.log.addHandler(handler)

    def _dump(self, *args: Any) -> None:
        dump(self.log, *args)

    def configure(self, config: str, runtime: str, version: str) -> EventMask:
        self.log.info("got configuration data: %r from runtime %s %s", config, runtime, version)
        if not config:
            return self.mask

        old = self.config
        new = old._merged(config)
        try:
            mask = parse_event_mask(*new.events)
        except ValueError as err:
            raise ConfigError(f"failed to parse events in configuration: {err}") from err
        self.config = new
        self.mask = mask

        if new.log_file != old.log_file:
            self._open_log_file(new.log_file)

        return self.mask

    def synchronize(self, pods: list[PodSandbox], containers: list[Container]) -> list:
        self._dump("Synchronize", "pods", pods, "containers", containers)
        return []

    def shutdown(self) -> None:
        self._dump("Shutdown")

    def run_pod_sandbox(self, pod: PodSandbox) -> None:
        self._dump("RunPodSandbox", "pod", pod)

    def stop_pod_sandbox(self, pod: PodSandbox) -> None:
        self._dump("StopPodSandbox", "pod", pod)

    def remove_pod_sandbox(self, pod: PodSandbox) -> None:
        self._dump("RemovePodSandbox", "pod", pod)

    def create_container(
        self, pod: PodSandbox, container: Container
    ) -> tuple[ContainerAdjustment, list]:
        self._dump("CreateContainer", "pod", pod, "container", container)

        adjust = ContainerAdjustment()
        linux = container.linux if container is not None else None
        existing = linux.cgroups_path if linux is not None else ""
        new_path = f"injectedpath/{existing}"
        self.log.info("Adjusting cgroup path from [%s] to [%s]", existing, new_path)
        adjust.set_linux_cgroups_path(new_path)

        tag = f"logger-pid-{os.getpid()}"
        cfg = self.config
        if cfg.add_annotation:
            adjust.add_annotation(cfg.add_annotation, tag)
        if cfg.set_annotation:
            adjust.remove_annotation(cfg.set_annotation)
            adjust.add_annotation(cfg.set_annotation, tag)
        if cfg.add_env:
            adjust.add_env(cfg.add_env, tag)
        if cfg.set_env:
            adjust.remove_env(cfg.set_env)
            adjust.add_env(cfg.set_env, tag)

        return adjust, []

    def post_create_container(self, pod: PodSandbox, container: Container) -> None:
        self._dump("PostCreateContainer", "pod", pod, "container", container)

    def start_container(self, pod: PodSandbox, container: Container) -> None:
        self._dump("StartContainer", "pod", pod, "container", container)

    def post_start_container(self, pod: PodSandbox, container: Container) -> None:
        self._dump("PostStartContainer", "pod", pod, "container", container)

    def update_container(self, pod: PodSandbox, container: Container, resources: Any) -> list:
        self._dump("UpdateContainer", "pod", pod, "container", container, "resources", resources)
        return []

    def post_update_container(self, pod: PodSandbox, container: Container) -> None:
        self._dump("PostUpdateContainer", "pod", pod, "container", container)

    def stop_container(self, pod: PodSandbox, container: Container) -> list:
        self._dump("StopContainer", "pod", pod, "container", container)
        return []

    def remove_container(self, pod: PodSandbox, container: Container) -> None:
        self._dump("RemoveContainer", "pod", pod, "container", container)
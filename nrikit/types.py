"""Request and result types exchanged with one-shot runtime hook plugins."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class PluginError(Exception):
    """Error reported by a plugin through the error field of its result."""


class State(str, enum.Enum):
    """Lifecycle action a request is made for."""

    CREATE = "create"
    DELETE = "delete"
    UPDATE = "update"
    PAUSE = "pause"
    RESUME = "resume"


def _coerce_state(value: Any) -> State | str:
    if isinstance(value, State):
        return value
    text = "" if value is None else str(value)
    try:
        return State(text)
    except ValueError:
        return text


def _state_value(state: State | str) -> str:
    return state.value if isinstance(state, State) else state


def _require_mapping(data: Any, what: str) -> dict:
    if not isinstance(data, dict):
        raise ValueError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


@dataclass
class Plugin:
    """A plugin entry of the global configuration."""

    type: str = ""
    conf: Any = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.type}
        if self.conf is not None:
            data["conf"] = self.conf
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Plugin:
        data = _require_mapping(data, "plugin")
        return cls(type=data.get("type") or "", conf=data.get("conf"))


@dataclass
class ConfigList:
    """The global plugin configuration list."""

    version: str = ""
    plugins: list[Plugin] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "plugins": [plugin.to_dict() for plugin in self.plugins],
        }

    @classmethod
    def from_dict(cls, data: Any) -> ConfigList:
        data = _require_mapping(data, "configuration list")
        return cls(
            version=data.get("version") or "",
            plugins=[Plugin.from_dict(item) for item in data.get("plugins") or []],
        )


@dataclass
class Spec:
    """The part of the container specification handed to plugins."""

    resources: Any = None
    namespaces: dict[str, str] = field(default_factory=dict)
    cgroups_path: str = ""
    annotations: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"resources": self.resources}
        if self.namespaces:
            data["namespaces"] = dict(self.namespaces)
        if self.cgroups_path:
            data["cgroupsPath"] = self.cgroups_path
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Spec:
        data = _require_mapping(data, "spec")
        return cls(
            resources=data.get("resources"),
            namespaces=dict(data.get("namespaces") or {}),
            cgroups_path=data.get("cgroupsPath") or "",
            annotations=dict(data.get("annotations") or {}),
        )


@dataclass
class Result:
    """Outcome of one plugin invocation."""

    plugin: str = ""
    version: str = ""
    error: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def err(self) -> PluginError | None:
        """Return the reported error as an exception, or None if there is none."""
        if self.error:
            return PluginError(self.error)
        return None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "plugin": self.plugin,
            "version": self.version,
            "error": self.error,
        }
        if self.metadata:
            data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Result:
        data = _require_mapping(data, "result")
        return cls(
            plugin=data.get("plugin") or "",
            version=data.get("version") or "",
            error=data.get("error") or "",
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class Request:
    """A plugin invocation request."""

    conf: Any = None
    version: str = ""
    state: State | str = ""
    id: str = ""
    sandbox_id: str = ""
    pid: int = 0
    spec: Spec | None = None
    labels: dict[str, str] = field(default_factory=dict)
    results: list[Result] = field(default_factory=list)

    def is_sandbox(self) -> bool:
        """Whether the request is made for a sandbox rather than a container."""
        return self.id == self.sandbox_id

    def new_result(self, plugin: str) -> Result:
        """Start a result for this request on behalf of the named plugin."""
        return Result(plugin=plugin, version=self.version, metadata={})

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        if self.conf is not None:
            data["conf"] = self.conf
        data["version"] = self.version
        data["state"] = _state_value(self.state)
        data["id"] = self.id
        if self.sandbox_id:
            data["sandboxID"] = self.sandbox_id
        if self.pid:
            data["pid"] = self.pid
        data["spec"] = self.spec.to_dict() if self.spec is not None else None
        if self.labels:
            data["labels"] = dict(self.labels)
        if self.results:
            data["results"] = [result.to_dict() for result in self.results]
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Request:
        data = _require_mapping(data, "request")
        spec = data.get("spec")
        return cls(
            conf=data.get("conf"),
            version=data.get("version") or "",
            state=_coerce_state(data.get("state")),
            id=data.get("id") or "",
            sandbox_id=data.get("sandboxID") or "",
            pid=int(data.get("pid") or 0),
            spec=Spec.from_dict(spec) if spec is not None else None,
            labels=dict(data.get("labels") or {}),
            results=[Result.from_dict(item) for item in data.get("results") or []],
        )
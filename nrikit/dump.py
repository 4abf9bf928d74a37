"""Render objects as YAML for log output."""

from __future__ import annotations

import dataclasses
import enum
import logging
from typing import Any

import yaml


def _to_plain(obj: Any) -> Any:
    if isinstance(obj, enum.Enum):
        return obj.value
    if hasattr(obj, "to_dict") and callable(obj.to_dict):
        return obj.to_dict()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            item.name: _to_plain(getattr(obj, item.name))
            for item in dataclasses.fields(obj)
        }
    if isinstance(obj, (list, tuple)):
        return [_to_plain(item) for item in obj]
    if isinstance(obj, dict):
        return {str(key): _to_plain(value) for key, value in obj.items()}
    return obj


def _marshal(obj: Any) -> str:
    text = yaml.safe_dump(_to_plain(obj), default_flow_style=False, sort_keys=True)
    if text.endswith("\n...\n"):
        text = text[: -len("...\n")]
    return text


def dump_lines(*args: Any, name: str = "") -> list[str]:
    """Format tag/object pairs, with an optional leading prefix, as log lines."""
    items = list(args)
    prefix = ""
    if len(items) % 2 == 1:
        prefix = items.pop(0)
        if not isinstance(prefix, str):
            raise TypeError("dump prefix must be a string")

    lead = f"{name} " if name else ""
    lines: list[str] = []
    for tag, obj in zip(items[0::2], items[1::2]):
        try:
            text = _marshal(obj)
        except yaml.YAMLError as err:
            lines.append(f"{prefix}: {tag}: failed to dump object: {err}")
            continue

        body = text.strip().split("\n")
        if prefix:
            lines.append(f"{lead}{prefix}: {tag}:")
            lines.extend(f"{lead}{prefix}:    {line}" for line in body)
        else:
            lines.append(f"{lead}{tag}:")
            lines.extend(f"{lead}  {line}" for line in body)
    return lines


def dump(logger: logging.Logger, *args: Any, name: str = "") -> None:
    """Log tag/object pairs at info level."""
    for line in dump_lines(*args, name=name):
        logger.info("%s", line)
import logging

import pytest

from nrikit.api import PodSandbox
from nrikit.dump import dump, dump_lines


def test_prefixed_dump():
    lines = dump_lines("CreateContainer", "pod", {"name": "pod0"})
    assert lines == ["CreateContainer: pod:", "CreateContainer:    name: pod0"]


def test_unprefixed_dump():
    assert dump_lines("pod", {"name": "pod0"}) == ["pod:", "  name: pod0"]


def test_named_dump_lines_carry_name():
    lines = dump_lines("Synchronize", "pods", {"name": "pod0"}, name="[00]")
    assert lines[0] == "[00] Synchronize: pods:"
    assert all(line.startswith("[00] ") for line in lines)


def test_named_unprefixed_dump():
    lines = dump_lines("pod", {"name": "pod0"}, name="[00]")
    assert lines == ["[00] pod:", "[00]   name: pod0"]


def test_prefix_only_dumps_nothing():
    assert dump_lines("Shutdown") == []


def test_keys_are_sorted():
    lines = dump_lines("obj", {"b": 1, "a": 2})
    assert lines[1:] == ["  a: 2", "  b: 1"]


def test_none_object_is_null():
    assert dump_lines("RunPodSandbox", "pod", None)[1] == "RunPodSandbox:    null"


def test_dataclass_object_uses_to_dict():
    lines = dump_lines("pod", PodSandbox(id="pod0"))
    assert lines == ["pod:", "  id: pod0"]


def test_unrepresentable_object_reports_failure():
    lines = dump_lines("Create", "thing", object())
    assert len(lines) == 1
    assert lines[0].startswith("Create: thing: failed to dump object:")


def test_non_string_prefix_rejected():
    with pytest.raises(TypeError):
        dump_lines(1, "tag", "obj")


def test_dump_logs_same_lines(caplog):
    logger = logging.getLogger("nrikit.test.dump")
    with caplog.at_level(logging.INFO, logger="nrikit.test.dump"):
        dump(logger, "StopPodSandbox", "pod", {"id": "pod0"})
    assert caplog.messages == dump_lines("StopPodSandbox", "pod", {"id": "pod0"})
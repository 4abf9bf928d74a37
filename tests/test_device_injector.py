import logging

import pytest

from nrikit.api import Container, LinuxDevice, Mount, PodSandbox
from nrikit.device_injector import (
    AnnotationError,
    Device,
    DeviceInjector,
    MountSpec,
    container_name,
    parse_devices,
    parse_mounts,
)

DEVICES = {
    "devices.nri.io/container.ctr0": "- path: /dev/nri-ctr\n  type: c\n  major: 10\n  minor: 1\n",
    "devices.nri.io/pod": "- path: /dev/nri-pod\n  type: b\n  major: 8\n  minor: 0\n",
    "devices.nri.io": "- path: /dev/nri-all\n  type: c\n  major: 1\n  minor: 3\n",
}

MOUNTS = {
    "mounts.nri.io/pod": (
        "- source: /srv/data\n  destination: /data\n  type: bind\n"
        "  options: [rbind, ro]\n"
    ),
}


def test_container_annotation_takes_precedence():
    devices = parse_devices("ctr0", DEVICES)
    assert [d.path for d in devices] == ["/dev/nri-ctr"]
    assert devices[0].major == 10
    assert devices[0].minor == 1


def test_pod_annotation_used_for_other_containers():
    devices = parse_devices("other", DEVICES)
    assert [d.path for d in devices] == ["/dev/nri-pod"]


def test_bare_annotation_is_last_fallback():
    annotations = {"devices.nri.io": DEVICES["devices.nri.io"]}
    devices = parse_devices("ctr0", annotations)
    assert [d.path for d in devices] == ["/dev/nri-all"]


def test_missing_annotation_gives_no_devices():
    assert parse_devices("ctr0", {"unrelated": "x"}) == []
    assert parse_mounts("ctr0", {}) == []


def test_invalid_yaml_names_the_key():
    with pytest.raises(AnnotationError, match="devices.nri.io/pod"):
        parse_devices("ctr0", {"devices.nri.io/pod": "- path: [unclosed"})


def test_wrong_field_type_is_rejected():
    with pytest.raises(AnnotationError):
        parse_devices("ctr0", {"devices.nri.io": "- path: /dev/x\n  major: abc\n"})


def test_mapping_instead_of_list_is_rejected():
    with pytest.raises(AnnotationError):
        parse_mounts("ctr0", {"mounts.nri.io": "source: /a\ndestination: /b\n"})


def test_device_to_nri_drops_zero_optionals():
    device = Device(path="/dev/x", type="c", major=1, minor=2)
    assert device.to_nri() == LinuxDevice(path="/dev/x", type="c", major=1, minor=2)
    assert device.to_nri().file_mode is None


def test_device_to_nri_keeps_nonzero_optionals():
    device = Device.from_dict(
        {"path": "/dev/y", "type": "c", "major": 5, "minor": 6, "file_mode": 420, "uid": 7, "gid": 9}
    )
    converted = device.to_nri()
    assert converted.file_mode == 420
    assert converted.uid == 7
    assert converted.gid == 9


def test_negative_uid_is_rejected():
    with pytest.raises(ValueError):
        Device.from_dict({"path": "/dev/z", "uid": -1})


def test_mount_round_trip_to_nri():
    mounts = parse_mounts("ctr0", MOUNTS)
    assert mounts == [
        MountSpec(source="/srv/data", destination="/data", type="bind", options=["rbind", "ro"])
    ]
    assert mounts[0].to_nri() == Mount(
        source="/srv/data", destination="/data", type="bind", options=["rbind", "ro"]
    )


def test_container_name():
    ctr = Container(name="ctr0")
    assert container_name(PodSandbox(name="pod0"), ctr) == "pod0/ctr0"
    assert container_name(None, ctr) == "ctr0"


def test_create_container_injects_devices_and_mounts():
    pod = PodSandbox(name="pod0", annotations={**DEVICES, **MOUNTS})
    ctr = Container(name="ctr0")
    adjust, updates = DeviceInjector().create_container(pod, ctr)
    assert updates == []
    assert adjust.linux.devices == [d.to_nri() for d in parse_devices("ctr0", DEVICES)]
    assert [m.destination for m in adjust.mounts] == ["/data"]


def test_create_container_without_annotations(caplog):
    logger = logging.getLogger("test.device_injector.empty")
    caplog.set_level(logging.INFO, logger=logger.name)
    adjust, _ = DeviceInjector(logger=logger).create_container(
        PodSandbox(name="pod0"), Container(name="ctr0")
    )
    assert adjust.linux is None
    assert adjust.mounts == []
    assert "pod0/ctr0: no devices annotated..." in caplog.messages
    assert "pod0/ctr0: no mounts annotated..." in caplog.messages


def test_create_container_logs_injected_device(caplog):
    logger = logging.getLogger("test.device_injector.log")
    caplog.set_level(logging.INFO, logger=logger.name)
    DeviceInjector(logger=logger).create_container(
        PodSandbox(name="pod0", annotations=DEVICES), Container(name="ctr0")
    )
    assert any('injected device "/dev/nri-ctr"' in m for m in caplog.messages)


def test_verbose_mode_dumps_adjustment(caplog):
    logger = logging.getLogger("test.device_injector.verbose")
    caplog.set_level(logging.INFO, logger=logger.name)
    DeviceInjector(verbose=True, logger=logger).create_container(
        PodSandbox(name="pod0", annotations=DEVICES), Container(name="ctr0")
    )
    assert "pod0/ctr0: annotated devices:" in caplog.messages
    assert "pod0/ctr0: ContainerAdjustment:" in caplog.messages


def test_create_container_propagates_annotation_error():
    pod = PodSandbox(name="pod0", annotations={"mounts.nri.io": "- 12"})
    with pytest.raises(AnnotationError):
        DeviceInjector().create_container(pod, Container(name="ctr0"))
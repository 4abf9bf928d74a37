import logging

import pytest

from nrikit.api import Container, EventMask, PodSandbox
from nrikit.template import TemplateConfig, TemplatePlugin

POD = PodSandbox(id="pod0", name="pod0", uid="uid0", namespace="default")
CTR = Container(id="ctr0", pod_sandbox_id="pod0", name="ctr0")


def test_configure_empty_keeps_defaults():
    plugin = TemplatePlugin()
    assert plugin.configure("", "mockRuntime", "0.0.1") == EventMask(0)
    assert plugin.config == TemplateConfig()


def test_configure_reads_parameter():
    plugin = TemplatePlugin()
    assert plugin.configure("cfgParam1: value", "mockRuntime", "0.0.1") == EventMask(0)
    assert plugin.config.cfg_param1 == "value"


def test_configure_rejects_bad_yaml():
    with pytest.raises(ValueError):
        TemplatePlugin().configure("cfgParam1: [unclosed", "rt", "1")


def test_configure_rejects_wrong_type():
    with pytest.raises(ValueError):
        TemplatePlugin().configure("cfgParam1: [1, 2]", "rt", "1")


def test_configure_logs_runtime(caplog):
    with caplog.at_level(logging.INFO, logger="nrikit.template"):
        TemplatePlugin().configure("", "mockRuntime", "0.0.1")
    assert "Connected to mockRuntime/0.0.1..." in caplog.messages


def test_create_container_changes_nothing():
    adjust, updates = TemplatePlugin().create_container(POD, CTR)
    assert adjust.to_dict() == {}
    assert updates == []


def test_update_and_stop_return_no_updates():
    plugin = TemplatePlugin()
    assert plugin.update_container(POD, CTR, None) == []
    assert plugin.stop_container(POD, CTR) == []
    assert plugin.synchronize([POD], [CTR]) == []


def test_pod_events_are_logged(caplog):
    plugin = TemplatePlugin()
    with caplog.at_level(logging.INFO, logger="nrikit.template"):
        plugin.run_pod_sandbox(POD)
        plugin.stop_pod_sandbox(POD)
        plugin.remove_pod_sandbox(POD)
    assert caplog.messages == [
        "Started pod default/pod0...",
        "Stopped pod default/pod0...",
        "Removed pod default/pod0...",
    ]


def test_container_events_are_logged(caplog):
    plugin = TemplatePlugin()
    with caplog.at_level(logging.INFO, logger="nrikit.template"):
        plugin.post_create_container(POD, CTR)
        plugin.start_container(POD, CTR)
        plugin.post_start_container(POD, CTR)
        plugin.post_update_container(POD, CTR)
        plugin.remove_container(POD, CTR)
    assert caplog.messages == [
        "Created container default/pod0/ctr0...",
        "Starting container default/pod0/ctr0...",
        "Started container default/pod0/ctr0...",
        "Updated container default/pod0/ctr0...",
        "Removed container default/pod0/ctr0...",
    ]


def test_shutdown_is_logged(caplog):
    with caplog.at_level(logging.INFO, logger="nrikit.template"):
        TemplatePlugin().shutdown()
    assert caplog.messages == ["Runtime shutting down..."]
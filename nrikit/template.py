"""A minimal plugin that logs every pod and container lifecycle event."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import yaml

from nrikit.api import Container, ContainerAdjustment, EventMask, PodSandbox


@dataclass
class TemplateConfig:
    """Configuration of the template plugin."""

    cfg_param1: str = ""


def _pod_ref(pod: PodSandbox | None) -> str:
    if pod is None:
        return "/"
    return f"{pod.namespace}/{pod.name}"


def _ctr_ref(pod: PodSandbox | None, container: Container | None) -> str:
    name = container.name if container is not None else ""
    return f"{_pod_ref(pod)}/{name}"


class TemplatePlugin:
    """Plugin skeleton that accepts every event and changes nothing."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or logging.getLogger("nrikit.template")
        self.config = TemplateConfig()

    def configure(self, config: str, runtime: str, version: str) -> EventMask:
        self.log.info("Connected to %s/%s...", runtime, version)
        if not config:
            return EventMask(0)

        try:
            data: Any = yaml.safe_load(config)
        except yaml.YAMLError as err:
            raise ValueError(f"failed to parse configuration: {err}") from err

        if data is not None:
            if not isinstance(data, dict):
                raise ValueError("failed to parse configuration: not a mapping")
            value = data.get("cfgParam1", self.config.cfg_param1)
            if not isinstance(value, str):
                raise ValueError("failed to parse configuration: cfgParam1 must be a string")
            self.config = TemplateConfig(cfg_param1=value)

        self.log.info("Got configuration data %s...", self.config)
        return EventMask(0)

    def synchronize(self, pods: list[PodSandbox], containers: list[Container]) -> list:
        self.log.info("Synchronizing state with the runtime...")
        return []

    def shutdown(self) -> None:
        self.log.info("Runtime shutting down...")

    def run_pod_sandbox(self, pod: PodSandbox) -> None:
        self.log.info("Started pod %s...", _pod_ref(pod))

    def stop_pod_sandbox(self, pod: PodSandbox) -> None:
        self.log.info("Stopped pod %s...", _pod_ref(pod))

    def remove_pod_sandbox(self, pod: PodSandbox) -> None:
        self.log.info("Removed pod %s...", _pod_ref(pod))

    def create_container(
        self, pod: PodSandbox, container: Container
    ) -> tuple[ContainerAdjustment, list]:
        self.log.info("Creating container %s...", _ctr_ref(pod, container))
        return ContainerAdjustment(), []

    def post_create_container(self, pod: PodSandbox, container: Container) -> None:
        self.log.info("Created container %s...", _ctr_ref(pod, container))

    def start_container(self, pod: PodSandbox, container: Container) -> None:
        self.log.info("Starting container %s...", _ctr_ref(pod, container))

    def post_start_container(self, pod: PodSandbox, container: Container) -> None:
        self.log.info("Started container %s...", _ctr_ref(pod, container))

    def update_container(
        self, pod: PodSandbox, container: Container, resources: Any
    ) -> list:
        self.log.info("Updating container %s...", _ctr_ref(pod, container))
        return []

    def post_update_container(self, pod: PodSandbox, container: Container) -> None:
        self.log.info("Updated container %s...", _ctr_ref(pod, container))

    def stop_container(self, pod: PodSandbox, container: Container) -> list:
        self.log.info("Stopped container %s...", _ctr_ref(pod, container))
        return []

    def remove_container(self, pod: PodSandbox, container: Container) -> None:
        self.log.info("Removed container %s...", _ctr_ref(pod, container))
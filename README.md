# nrikit

Building blocks for node resource interface (NRI) plugins: the data types
exchanged with a container runtime, a runner for one-shot plugins that talk
JSON over standard input and output, and a few ready-made plugin classes
whose event handlers you call directly.

## What is inside

- `nrikit.types` – the one-shot plugin protocol: `Request`, `Result`, `Spec`,
  `State`, `Plugin` and `ConfigList`, each with `to_dict()` / `from_dict()`.
  `Request.is_sandbox()` tells whether `id` equals `sandbox_id`;
  `Request.new_result(plugin)` starts a `Result` carrying the request's
  version. `Result.err()` returns a `PluginError` when the result carries an
  error message and `None` otherwise.
- `nrikit.skel` – subclass `Plugin`, give it `type()` and `invoke()`, and hand
  it to `run()` to serve a single request.
- `nrikit.api` – pods (`PodSandbox`), containers (`Container`), devices
  (`LinuxDevice`), mounts (`Mount`), events (`Event`, `EventMask`,
  `parse_event_mask`) and `ContainerAdjustment`, the set of changes a plugin
  asks for on a container being created.
- `nrikit.dump` – render objects as YAML log lines (`dump_lines`, `dump`).
- `nrikit.device_injector` – inject devices and mounts described in pod
  annotations (`devices.nri.io`, `mounts.nri.io`).
- `nrikit.logger_plugin` – log every pod and container event, rewrite the
  cgroups path of created containers and optionally add annotations or
  environment variables.
- `nrikit.differ` – several instances at different plugin indices log what
  the plugins in between changed.
- `nrikit.template` – a skeleton plugin that logs each event and changes
  nothing.

## A one-shot plugin

```python
from nrikit import skel


class Echo(skel.Plugin):
    def type(self):
        return "echo"

    def invoke(self, request):
        result = request.new_result(self.type())
        result.metadata["id"] = request.id
        return result


skel.run(Echo())
```

`run(plugin, argv=None, stdin=None, stdout=None)` reads one JSON request from
`stdin` (default `sys.stdin`). The command is the first item of `argv`
(default `sys.argv[1:]`). For `invoke` the plugin is called; an exception it
raises is reported in the `error` field of a fresh result instead. Any other
command yields a result whose error reads `invalid arg <command>`. A missing
command raises `ValueError`. The result is written to `stdout` as one line of
JSON.

## Event masks

```python
from nrikit.api import EventMask, parse_event_mask

mask = parse_event_mask("RunPodSandbox,CreateContainer", "StopContainer")
assert EventMask.CREATE_CONTAINER in mask
assert parse_event_mask("all") == EventMask.ALL
```

Event names are matched case-insensitively; an unknown name raises
`ValueError`.

## Injecting devices from annotations

```python
from nrikit.api import Container, PodSandbox
from nrikit.device_injector import DeviceInjector, parse_devices

annotations = {
    "devices.nri.io/container.app": """
- path: /dev/nri-null
  type: c
  major: 1
  minor: 3
  file_mode: 438
""",
}

devices = parse_devices("app", annotations)

pod = PodSandbox(name="web", annotations=annotations)
container = Container(name="app")
adjustment, updates = DeviceInjector().create_container(pod, container)
print(adjustment.to_dict())
```

Annotations are looked up from the most to the least specific key:
`<prefix>/container.<name>`, then `<prefix>/pod`, then `<prefix>` alone.
A malformed annotation raises `AnnotationError` naming the key.
`parse_mounts` does the same for `mounts.nri.io`.

## Logging plugin

```python
from nrikit.logger_plugin import LoggerConfig, LoggerPlugin

plugin = LoggerPlugin(LoggerConfig(add_annotation="logged-by"), events="all")
mask = plugin.configure("setEnv: LOGGED\n", "runtime", "1.0")
```

`configure` merges YAML configuration (`logFile`, `events`, `addAnnotation`,
`setAnnotation`, `addEnv`, `setEnv`) into the current one and returns the
new event mask; bad configuration raises `ConfigError`. `create_container`
returns an adjustment that prefixes the container's cgroups path with
`injectedpath/` and adds the configured annotations and environment
variables with the value `logger-pid-<pid>`.

## Watching what plugins change

```python
from nrikit.api import PodSandbox
from nrikit.differ import DifferPlugin, parse_indices

chain = parse_indices("10,50,90")
first = DifferPlugin(chain, 10)
second = DifferPlugin(chain, 50)

first.run_pod_sandbox(PodSandbox(name="web"))
second.run_pod_sandbox(PodSandbox(name="web", labels={"app": "web"}))
```

`parse_indices` needs at least two comma-separated indices and returns an
`IndexChain`. The instance at the first index queues copies of what it sees;
each later instance compares what it receives with the oldest value queued by
the previous index and logs the differences, either as a field-by-field list
(`diff_objects`) or, with `DifferConfig(yaml=True)`, as a line diff of the
YAML forms (`yaml_diff`).

## What this package does not do

There is no connection to a container runtime here: no socket transport, no
registration with a runtime, no event loop that delivers events. The plugin
classes expose their handlers as plain methods for you to call. There are no
command-line programs either; the only entry point that reads and writes
standard streams is `skel.run`.
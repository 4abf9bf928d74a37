"""Types, a one-shot runner and sample plugins for node resource interface hooks."""

__version__ = "0.1.0"

__all__ = [
    "api",
    "device_injector",
    "differ",
    "dump",
    "logger_plugin",
    "skel",
    "template",
    "types",
]
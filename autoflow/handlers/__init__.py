"""Action handlers: the registry and the built-in handler set."""

from autoflow.handlers.registry import Handler, HandlerRegistry, build_default_registry

__all__ = ["Handler", "HandlerRegistry", "build_default_registry"]

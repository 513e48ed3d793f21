"""
tools/registry.py — Tool Registry

Maps tool names to their descriptors and async handlers. Tool set modules
register through the @registry.register() decorator:

    registry = ToolRegistry()

    @registry.register(
        name="notes_search",
        description="Search notes",
        module=Module.NOTES,
        parameters={"type": "object", "properties": {"q": {"type": "string"}}},
    )
    async def notes_search(ctx: ToolContext, q: str | None = None) -> dict:
        ...

Handlers receive the ToolContext first, then the validated arguments as
keyword arguments.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from netden.agent.types import Module
from netden.observability.logger import get_logger
from netden.tools.types import ToolDescriptor, ToolHandler

log = get_logger(__name__)


class ToolRegistry:
    """
    Registry of tool descriptors, keyed by name, in registration order.

    Reads are plain dict lookups. Registration happens once at startup.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(
        self,
        name: str,
        description: str,
        module: Module,
        mutating: bool = False,
        parameters: Optional[dict[str, Any]] = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of register_tool()."""
        def decorator(fn: ToolHandler) -> ToolHandler:
            self.register_tool(ToolDescriptor(
                name=name,
                description=description,
                module=module,
                mutating=mutating,
                parameters=parameters or {"type": "object", "properties": {}},
                execute=fn,
            ))
            return fn

        return decorator

    def register_tool(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor
        log.debug("tool.registered", tool=descriptor.name,
                  module=descriptor.module.value, mutating=descriptor.mutating)

    def get(self, name: str) -> Optional[ToolDescriptor]:
        return self._tools.get(name)

    def is_mutating(self, name: str) -> bool:
        """Unknown tools are reported as non-mutating."""
        descriptor = self._tools.get(name)
        return descriptor.mutating if descriptor else False

    def catalog(self, modules: Iterable[Module] = ()) -> list[ToolDescriptor]:
        """Descriptors for the given modules; an empty selection means all."""
        wanted = set(modules)
        if not wanted:
            return list(self._tools.values())
        return [d for d in self._tools.values() if d.module in wanted]

    def provider_tools(self, modules: Iterable[Module] = ()) -> list[dict[str, Any]]:
        return [d.to_provider_tool() for d in self.catalog(modules)]

    def list_names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __repr__(self) -> str:
        return f"<ToolRegistry tools={list(self._tools)}>"

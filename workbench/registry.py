"""Tool registry -- name -> (handler, request model) with validated dispatch.

Handlers take ``(request, ctx)`` and return a ``ToolResponse`` (or any
value, which is stringified into a success).  They may be plain functions
or coroutines.  An exception escaping a handler never reaches the caller:
it is rendered as a failure prefixed with the tool's error label.

The MCP server builds one ``Registry`` at startup; tests build their own.
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from workbench.contracts import ToolResponse
from workbench.errors import ToolNotFound

logger = logging.getLogger(__name__)

# JSON-schema keywords passed through to MCP clients
_KEPT_KEYWORDS = frozenset(
    {"type", "description", "default", "enum", "items", "minimum", "minLength"}
)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    handler: Callable[[Any, Any], Any]
    model: type[BaseModel]
    description: str
    error_label: str

    @cached_property
    def definition(self) -> dict[str, Any]:
        """MCP tool definition with camelCase input properties."""
        schema = self.model.model_json_schema(by_alias=True)
        props = {
            key: _input_property(value)
            for key, value in schema.get("properties", {}).items()
        }
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": props,
                "required": list(schema.get("required", [])),
                "additionalProperties": False,
            },
        }


class Registry:
    """Registered tools, in registration order.

    Usage::

        registry = Registry()
        registry.register("vcs_status", handler, VcsStatusRequest, "Repo status")
        response = await registry.dispatch("vcs_status", {}, ctx)
    """

    def __init__(self) -> None:
        self._specs: dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        handler: Callable[[Any, Any], Any],
        model: type[BaseModel],
        description: str,
        *,
        error_label: str | None = None,
    ) -> ToolSpec:
        """Add a tool.  A second registration under *name* is a ``ValueError``.

        *error_label* prefixes the message of anything the handler raises;
        it defaults to ``"Error running <name>"``.
        """
        if name in self._specs:
            raise ValueError(f"Tool '{name}' is already registered")
        spec = ToolSpec(
            name, handler, model, description, error_label or f"Error running {name}"
        )
        self._specs[name] = spec
        return spec

    async def dispatch(self, name: str, params: dict[str, Any] | None, ctx: Any) -> ToolResponse:
        """Run tool *name* and return its response stamped with ``duration_ms``.

        Raises ``ToolNotFound`` for an unregistered name.  Invalid *params*
        and handler exceptions come back as failed responses.
        """
        started = time.perf_counter()
        spec = self._specs.get(name)
        if spec is None:
            raise ToolNotFound(name, self.tool_names())

        try:
            request = spec.model.model_validate(params or {})
        except ValidationError as exc:
            response = ToolResponse.fail(f"Invalid params for '{name}': {exc}")
        else:
            response = await _invoke(spec, request, ctx)

        return response.model_copy(update={"duration_ms": _ms_since(started)})

    def list_tools(self) -> list[dict[str, Any]]:
        return [spec.definition for spec in self._specs.values()]

    def has_tool(self, name: str) -> bool:
        return name in self._specs

    def tool_names(self) -> list[str]:
        return list(self._specs)


async def _invoke(spec: ToolSpec, request: BaseModel, ctx: Any) -> ToolResponse:
    try:
        result = spec.handler(request, ctx)
        if inspect.isawaitable(result):
            result = await result
    except Exception as exc:
        logger.warning("Tool %s raised %s: %s", spec.name, type(exc).__name__, exc)
        return ToolResponse.fail(f"{spec.error_label}: {_describe(exc)}")
    if isinstance(result, ToolResponse):
        return result
    return ToolResponse.ok(str(result))


def _ms_since(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _describe(exc: Exception) -> str:
    # str(OSError) leads with "[Errno N]"; rebuild it from its parts.
    if isinstance(exc, OSError) and exc.strerror:
        if exc.filename:
            return f"{exc.strerror}: {exc.filename}"
        return exc.strerror
    return str(exc)


def _input_property(prop: dict[str, Any]) -> dict[str, Any]:
    """Flatten ``anyOf [T, null]`` to ``T`` and drop keywords clients ignore."""
    if "anyOf" in prop:
        concrete = [branch for branch in prop["anyOf"] if branch.get("type") != "null"]
        prop = {**(concrete[0] if concrete else {}), **prop}
    out = {key: value for key, value in prop.items() if key in _KEPT_KEYWORDS}
    if "default" in out and out["default"] is None:
        del out["default"]
    out.setdefault("type", "string")
    return out

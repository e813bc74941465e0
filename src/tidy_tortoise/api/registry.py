from __future__ import annotations

import inspect
import types
import typing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Union, get_args, get_origin

from ..domain import ValidationError

JsonSchema = Dict[str, Any]

_SCALARS = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    dict: "object",
    list: "array",
}


def _json_type(annotation: Any) -> str:
    origin = get_origin(annotation)
    if origin is None:
        if isinstance(annotation, type) and issubclass(annotation, Enum):
            return "string"
        return _SCALARS.get(annotation, "string")
    if origin in (list, List, tuple):
        return "array"
    if origin in (dict, Dict):
        return "object"
    if origin in (Union, types.UnionType):
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _json_type(args[0]) if args else "string"
    return "string"


def _parameter_schema(param: inspect.Parameter, annotation: Any) -> JsonSchema:
    schema: JsonSchema = {"type": _json_type(annotation)}
    default = param.default
    if default is not inspect.Parameter.empty and default is not None:
        if isinstance(default, Enum):
            schema["default"] = default.value
        elif isinstance(default, (str, int, float, bool)):
            schema["default"] = default
    return schema


@dataclass(frozen=True)
class ApiFunction:
    name: str
    func: Callable[..., Any]
    description: str
    category: str
    tags: tuple[str, ...]
    signature: inspect.Signature
    hints: Dict[str, Any] = field(default_factory=dict)

    @property
    def parameters(self) -> Dict[str, str]:
        return {
            param.name: _json_type(self.hints.get(param.name, param.annotation))
            for param in self.signature.parameters.values()
        }

    @property
    def parameter_schema(self) -> JsonSchema:
        schema: JsonSchema = {"type": "object", "properties": {}, "required": []}
        for param in self.signature.parameters.values():
            schema["properties"][param.name] = _parameter_schema(param, self.hints.get(param.name, param.annotation))
            if param.default is inspect.Parameter.empty:
                schema["required"].append(param.name)
        if not schema["required"]:
            schema.pop("required")
        return schema

    def bind(self, arguments: Dict[str, Any]) -> inspect.BoundArguments:
        try:
            return self.signature.bind(**arguments)
        except TypeError as exc:
            raise ValidationError(f"{self.name}: {exc}") from exc


REGISTRY: Dict[str, ApiFunction] = {}


def register_api(
    name: str,
    *,
    description: str,
    category: str,
    tags: Optional[Iterable[str]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if name in REGISTRY:
            raise ValueError(f"API function '{name}' is already registered.")
        REGISTRY[name] = ApiFunction(
            name=name,
            func=func,
            description=description,
            category=category,
            tags=tuple(tags or ()),
            signature=inspect.signature(func),
            hints=typing.get_type_hints(func),
        )
        return func

    return decorator


def get_api_functions() -> List[ApiFunction]:
    return list(REGISTRY.values())


def has_api(name: str) -> bool:
    return name in REGISTRY


async def call_api(name: str, **kwargs: Any) -> Any:
    if name not in REGISTRY:
        raise KeyError(f"API function '{name}' is not registered.")
    api_function = REGISTRY[name]
    bound = api_function.bind(kwargs)
    result = api_function.func(*bound.args, **bound.kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result

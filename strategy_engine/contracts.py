"""Contract descriptors: the vocabulary providers and consumers agree on.

A contract is published once and never changes afterwards. Contracts do not
inherit from one another; a provider that needs to offer more behavior is
registered under several narrow contracts instead.
"""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import ContractDefinitionError

# Semantic "number" shape; bool is rejected when outputs are validated strictly.
Number = Union[int, float]

_NONE_TYPE = type(None)


@dataclass(frozen=True)
class Param:
    name: str
    shape: Any = Any


@dataclass(frozen=True)
class Operation:
    name: str
    params: tuple[Param, ...] = ()
    returns: Any = Any
    raises: tuple[type[Exception], ...] = ()
    asynchronous: bool = False
    description: str = field(default="", compare=False)

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.params)

    def signature(self) -> str:
        args = ", ".join(f"{p.name}: {shape_name(p.shape)}" for p in self.params)
        prefix = "async " if self.asynchronous else ""
        return f"{prefix}{self.name}({args}) -> {shape_name(self.returns)}"


@dataclass(frozen=True)
class Contract:
    name: str
    operations: tuple[Operation, ...]
    description: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ContractDefinitionError("contract name must be a non-empty string")
        seen: set[str] = set()
        for op in self.operations:
            if not isinstance(op, Operation):
                raise ContractDefinitionError(f"{self.name}: expected Operation, got {type(op).__name__}")
            if op.name in seen:
                raise ContractDefinitionError(f"{self.name}: duplicate operation '{op.name}'")
            seen.add(op.name)
            names = op.param_names
            if len(set(names)) != len(names):
                raise ContractDefinitionError(f"{self.name}.{op.name}: duplicate parameter name")

    @property
    def operation_names(self) -> tuple[str, ...]:
        return tuple(op.name for op in self.operations)

    def operation(self, name: str) -> Operation | None:
        for op in self.operations:
            if op.name == name:
                return op
        return None

    def __str__(self) -> str:
        return self.name


def operation(
    name: str,
    params: Iterable[str | tuple[str, Any]] | Mapping[str, Any] = (),
    *,
    returns: Any = Any,
    raises: Iterable[type[Exception]] = (),
    asynchronous: bool = False,
    description: str = "",
) -> Operation:
    """Build an operation signature.

    ``params`` is either a mapping of name -> shape or a sequence of names
    and ``(name, shape)`` pairs; order is significant.
    """
    if not name or not name.isidentifier():
        raise ContractDefinitionError(f"invalid operation name: {name!r}")
    if isinstance(params, (str, bytes)):
        raise ContractDefinitionError(
            f"{name}: params must be a sequence of names or a mapping, got {params!r}"
        )
    items = params.items() if isinstance(params, Mapping) else params
    built: list[Param] = []
    for item in items:
        if isinstance(item, str):
            built.append(Param(item))
        else:
            pname, shape = item
            built.append(Param(pname, shape))
    return Operation(
        name=name,
        params=tuple(built),
        returns=returns,
        raises=tuple(raises),
        asynchronous=asynchronous,
        description=description,
    )


def define_contract(name: str, *operations: Operation, description: str = "") -> Contract:
    """Publish an immutable contract descriptor."""
    return Contract(name=name, operations=tuple(operations), description=description)


class FunctionProvider:
    """Expose plain functions as provider operations.

    Useful for stateless strategies, e.g.
    ``FunctionProvider(apply=lambda amount: amount * 1.2)``.
    """

    def __init__(self, **operations: Callable[..., Any]) -> None:
        for op_name, fn in operations.items():
            if not callable(fn):
                raise TypeError(f"operation '{op_name}' must be callable")
            setattr(self, op_name, fn)
        self._names = tuple(operations)

    def __repr__(self) -> str:
        return f"FunctionProvider({', '.join(self._names)})"


def shape_name(shape: Any) -> str:
    if shape == Number:
        return "number"
    if shape is Any:
        return "any"
    if shape is None or shape is _NONE_TYPE:
        return "None"
    if isinstance(shape, type) and typing.get_origin(shape) is None:
        return shape.__name__
    return str(shape).replace("typing.", "")


# --- structural checks ---


def _classes(shape: Any) -> tuple[type, ...] | None:
    """Flatten a shape to plain classes, or None when it cannot be compared."""
    if shape is Any or shape is inspect.Parameter.empty:
        return None
    if shape is None or shape is _NONE_TYPE:
        return (_NONE_TYPE,)
    origin = typing.get_origin(shape)
    if origin is typing.Annotated:
        return _classes(typing.get_args(shape)[0])
    if origin is Union or origin is types.UnionType:
        out: list[type] = []
        for arg in typing.get_args(shape):
            sub = _classes(arg)
            if sub is None:
                return None
            out.extend(sub)
        return tuple(out)
    if origin is not None:
        return (origin,) if isinstance(origin, type) else None
    if isinstance(shape, type):
        return (shape,)
    return None


def _is_subclass(sub: type, sup: type) -> bool:
    if sup is object:
        return True
    # bool is not a number: outputs are validated strictly
    if sub is bool and sup is not bool:
        return False
    # numeric tower: int is acceptable where float is, int/float where complex is
    if sup is float and sub is int:
        return True
    if sup is complex and sub in (int, float):
        return True
    try:
        return issubclass(sub, sup)
    except TypeError:
        return False


def _accepts(provider_shape: Any, contract_shape: Any) -> bool:
    provided = _classes(provider_shape)
    required = _classes(contract_shape)
    if provided is None or required is None:
        return True
    return all(any(_is_subclass(c, p) for p in provided) for c in required)


def _within(provider_shape: Any, contract_shape: Any) -> bool:
    produced = _classes(provider_shape)
    allowed = _classes(contract_shape)
    if produced is None or allowed is None:
        return True
    return all(any(_is_subclass(p, a) for a in allowed) for p in produced)


def _type_hints(fn: Callable[..., Any]) -> dict[str, Any]:
    target = fn.__call__ if not inspect.isroutine(fn) and hasattr(fn, "__call__") else fn
    try:
        return typing.get_type_hints(target)
    except Exception:
        pass
    # resolve annotation by annotation; names that cannot be resolved are skipped
    func = inspect.unwrap(getattr(target, "__func__", target))
    try:
        raw = inspect.get_annotations(func)
    except Exception:
        return {}
    namespace = getattr(func, "__globals__", {})
    hints: dict[str, Any] = {}
    for pname, ann in raw.items():
        try:
            for _ in range(3):
                if not isinstance(ann, str):
                    break
                ann = eval(ann, namespace)  # noqa: S307
        except Exception:
            continue
        if not isinstance(ann, str):
            hints[pname] = ann
    return hints


def _positional(sig: inspect.Signature) -> list[inspect.Parameter]:
    kinds = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return [p for p in sig.parameters.values() if p.kind in kinds]


def check_provider(contract: Contract, provider: Any, *, check_annotations: bool = True) -> list[str]:
    """Return the structural problems preventing ``provider`` from satisfying ``contract``.

    An empty list means the provider may be registered. Each declared
    operation must be present and callable, must accept the declared
    parameters positionally without demanding extra required arguments, and
    must match the declared sync/async kind. With ``check_annotations``, the
    provider's annotations must not narrow the accepted input shapes nor
    widen the output shape.
    """
    problems: list[str] = []
    for op in contract.operations:
        fn = getattr(provider, op.name, None)
        if fn is None:
            problems.append(f"missing operation '{op.name}'")
            continue
        if not callable(fn):
            problems.append(f"'{op.name}' is not callable")
            continue

        is_coro = inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
            getattr(fn, "__call__", None)
        )
        if op.asynchronous and not is_coro:
            problems.append(f"'{op.name}' must be a coroutine function")
        elif is_coro and not op.asynchronous:
            problems.append(f"'{op.name}' must be synchronous")

        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError):
            continue
        try:
            sig.bind(*([None] * len(op.params)))
        except TypeError:
            problems.append(
                f"'{op.name}' cannot be called with {len(op.params)} declared parameter(s)"
                f" {op.param_names}"
            )
            continue

        if not check_annotations:
            continue
        hints = _type_hints(fn)
        positional = _positional(sig)
        for idx, param in enumerate(op.params):
            if idx >= len(positional):
                break
            ann = hints.get(positional[idx].name)
            if ann is not None and not _accepts(ann, param.shape):
                problems.append(
                    f"'{op.name}' narrows parameter '{param.name}' "
                    f"({shape_name(param.shape)} -> {shape_name(ann)})"
                )
        if "return" in hints and not _within(hints["return"], op.returns):
            problems.append(
                f"'{op.name}' widens return shape "
                f"({shape_name(op.returns)} -> {shape_name(hints['return'])})"
            )
    return problems


def satisfies(contract: Contract, provider: Any, *, check_annotations: bool = True) -> bool:
    return not check_provider(contract, provider, check_annotations=check_annotations)

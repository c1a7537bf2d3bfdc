from __future__ import annotations

import asyncio
import functools
import time
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ConfigDict, PydanticSchemaGenerationError, TypeAdapter, ValidationError

from .config import EngineConfig
from .contracts import Contract, Operation, shape_name
from .errors import (
    AsyncOperationError,
    ContractMismatch,
    ProviderFailure,
    UnknownOperation,
)
from .logging_utils import get_json_logger
from .registry import ContractRef, StrategyRegistry


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one facade call. Transient; owned by the caller."""

    key: str
    contract: str
    operation: str
    output: Any
    diagnostics: dict[str, Any] = field(default_factory=dict)


class ResolutionFacade:
    """Single entry point for consumers.

    Resolves a provider through the registry and calls it through the
    contract only. The facade keeps no state between calls and does not
    retry, cache or transform outputs.
    """

    def __init__(self, registry: StrategyRegistry, config: EngineConfig | None = None) -> None:
        self._registry = registry
        self.cfg = config or registry.cfg
        self._log = get_json_logger("facade", level=self.cfg.log_level)

    def _logger(self, op: str, cid: str):
        return self._log.bind(correlation_id=cid, op=op)

    def invoke(
        self, key: str, contract: ContractRef, operation: str, input: Any = None
    ) -> Any:
        """Resolve ``key`` for ``contract`` and call ``operation`` with ``input``.

        Returns the provider's output unchanged.
        """
        return self.execute(key, contract, operation, input).output

    def execute(
        self, key: str, contract: ContractRef, operation: str, input: Any = None
    ) -> ResolutionResult:
        """Like `invoke`, but returns the output together with call diagnostics."""
        cid = uuid.uuid4().hex
        logger = self._logger("invoke", cid)
        published, op, fn = self._locate(key, contract, operation, logger)
        if op.asynchronous:
            raise AsyncOperationError(
                f"{published.name}.{op.name} is asynchronous; use ainvoke()"
            )
        args = _bind(op, input)

        logger.debug("invoke", extra={"key": key, "contract": published.name, "operation": op.name})
        started = time.perf_counter()
        try:
            output = fn(*args)
        except Exception as exc:
            raise self._failure(key, published, op, exc, logger) from exc
        elapsed_ms = (time.perf_counter() - started) * 1000.0

        self._check_output(key, published, op, output, logger)
        return ResolutionResult(
            key=key,
            contract=published.name,
            operation=op.name,
            output=output,
            diagnostics={"elapsed_ms": elapsed_ms, "correlation_id": cid},
        )

    async def ainvoke(
        self,
        key: str,
        contract: ContractRef,
        operation: str,
        input: Any = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Async counterpart of `invoke`.

        Coroutine operations are awaited in the caller's task, so cancelling
        the caller cancels the provider call. ``timeout`` (or the configured
        default) bounds the await; on expiry the provider call is cancelled
        and TimeoutError propagates. Synchronous operations run inline.
        """
        cid = uuid.uuid4().hex
        logger = self._logger("ainvoke", cid)
        published, op, fn = self._locate(key, contract, operation, logger)
        args = _bind(op, input)
        limit = timeout if timeout is not None else self.cfg.invoke_timeout_sec

        logger.debug("invoke", extra={"key": key, "contract": published.name, "operation": op.name})
        if not op.asynchronous:
            try:
                output = fn(*args)
            except Exception as exc:
                raise self._failure(key, published, op, exc, logger) from exc
        else:
            scope = None
            try:
                async with asyncio.timeout(limit) as scope:
                    output = await fn(*args)
            except Exception as exc:
                if isinstance(exc, TimeoutError) and scope is not None and scope.expired():
                    logger.warning(
                        "invoke_timeout",
                        extra={"key": key, "contract": published.name, "operation": op.name, "timeout_sec": limit},
                    )
                    raise
                raise self._failure(key, published, op, exc, logger) from exc

        self._check_output(key, published, op, output, logger)
        return output

    # ----- internals -----

    def _locate(
        self, key: str, contract: ContractRef, operation: str, logger
    ) -> tuple[Contract, Operation, Callable[..., Any]]:
        entry = self._registry.entry(key, contract)
        provider, published = entry.provider, entry.contract
        op = published.operation(operation)
        if op is None:
            raise UnknownOperation(key, published.name, operation)
        fn = getattr(provider, operation, None)
        if not callable(fn):
            # registration validated this operation; reaching here is a consistency fault
            logger.error(
                "consistency_fault",
                extra={"key": key, "contract": published.name, "operation": operation},
            )
            raise UnknownOperation(key, published.name, operation)
        return published, op, fn

    def _failure(
        self, key: str, contract: Contract, op: Operation, exc: Exception, logger
    ) -> ProviderFailure:
        declared = isinstance(exc, op.raises) if op.raises else False
        detail = f"{type(exc).__name__}: {exc}"
        logger.warning(
            "provider_failure",
            extra={
                "key": key,
                "contract": contract.name,
                "operation": op.name,
                "error": detail,
                "declared": declared,
            },
        )
        return ProviderFailure(key, contract.name, op.name, detail, declared=declared)

    def _check_output(
        self, key: str, contract: Contract, op: Operation, output: Any, logger
    ) -> None:
        if not self.cfg.validate_outputs or op.returns is Any:
            return
        try:
            _adapter(op.returns).validate_python(output, strict=True)
        except ValidationError as exc:
            problem = (
                f"'{op.name}' returned {type(output).__name__}, expected {shape_name(op.returns)}"
            )
            logger.error(
                "output_mismatch",
                extra={"key": key, "contract": contract.name, "operation": op.name, "problem": problem},
            )
            raise ContractMismatch(key, contract.name, [problem]) from exc


def _build_adapter(shape: Any) -> TypeAdapter:
    try:
        return TypeAdapter(shape)
    except PydanticSchemaGenerationError:
        return TypeAdapter(shape, config=ConfigDict(arbitrary_types_allowed=True))


_cached_adapter = functools.lru_cache(maxsize=256)(_build_adapter)


def _adapter(shape: Any) -> TypeAdapter:
    """Validator for an output shape, built once per hashable shape."""
    try:
        hash(shape)
    except TypeError:
        return _build_adapter(shape)
    return _cached_adapter(shape)


def _bind(op: Operation, value: Any) -> tuple[Any, ...]:
    """Turn the single ``input`` value into positional arguments for ``op``."""
    names = op.param_names
    if not names:
        if value is not None:
            raise TypeError(f"operation '{op.name}' takes no input, got {type(value).__name__}")
        return ()
    if len(names) == 1:
        return (value,)
    if isinstance(value, Mapping):
        missing = [n for n in names if n not in value]
        extra = [k for k in value if k not in names]
        if missing or extra:
            raise TypeError(
                f"operation '{op.name}' expects inputs {names}; missing={missing} unexpected={extra}"
            )
        return tuple(value[n] for n in names)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        if len(value) != len(names):
            raise TypeError(f"operation '{op.name}' expects {len(names)} inputs, got {len(value)}")
        return tuple(value)
    raise TypeError(f"operation '{op.name}' expects a mapping of {names}")

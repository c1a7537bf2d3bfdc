"""Exception hierarchy raised by the contract set, registry and facade."""

from __future__ import annotations

from collections.abc import Sequence


class EngineError(Exception):
    """Base class for every error the engine raises."""


class ContractDefinitionError(EngineError, ValueError):
    """A contract descriptor is malformed (empty name, duplicate operation)."""


class DuplicateRegistration(EngineError):
    """The (key, contract) pair already has a live registration."""

    def __init__(self, key: str, contract: str) -> None:
        super().__init__(f"provider '{key}' is already registered for contract '{contract}'")
        self.key = key
        self.contract = contract


class ContractMismatch(EngineError):
    """A provider (or one of its outputs) does not satisfy a contract."""

    def __init__(self, key: str, contract: str, problems: Sequence[str]) -> None:
        self.key = key
        self.contract = contract
        self.problems = tuple(problems)
        super().__init__(
            f"provider '{key}' does not satisfy contract '{contract}': " + "; ".join(self.problems)
        )


class UnknownKey(EngineError, LookupError):
    """No provider is registered for the (key, contract) pair."""

    def __init__(self, key: str, contract: str) -> None:
        super().__init__(f"no provider '{key}' registered for contract '{contract}'")
        self.key = key
        self.contract = contract


class UnknownOperation(EngineError):
    """The operation is not part of the contract or missing on the provider."""

    def __init__(self, key: str, contract: str, operation: str) -> None:
        super().__init__(f"operation '{operation}' not available on '{key}' for contract '{contract}'")
        self.key = key
        self.contract = contract
        self.operation = operation


class AsyncOperationError(EngineError):
    """A coroutine operation was invoked through the synchronous entry point."""


class ProviderFailure(EngineError):
    """The provider's own operation raised.

    The original exception is available as ``__cause__``; ``declared`` tells
    whether its type is one of the operation's declared failure types.
    """

    def __init__(
        self,
        key: str,
        contract: str,
        operation: str,
        detail: str,
        *,
        declared: bool = False,
    ) -> None:
        super().__init__(f"provider '{key}' failed in {contract}.{operation}: {detail}")
        self.key = key
        self.contract = contract
        self.operation = operation
        self.detail = detail
        self.declared = declared


class ManifestError(EngineError):
    """A registration manifest references a target that cannot be loaded."""

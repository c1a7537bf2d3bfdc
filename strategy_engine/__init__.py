"""Capability-segregated strategy engine.

Pluggable behavior selected at runtime through narrow contracts:
- Contracts: immutable operation signatures (`contracts`)
- Registry: one provider per (key, contract), checked at registration (`registry`)
- Facade: the single call-in point for consumers (`facade`)
- Manifest loading, Markdown reporting, JSON logging, env config
"""

from __future__ import annotations

from .config import EngineConfig
from .contracts import (
    Contract,
    FunctionProvider,
    Number,
    Operation,
    Param,
    check_provider,
    define_contract,
    operation,
    satisfies,
)
from .errors import (
    AsyncOperationError,
    ContractDefinitionError,
    ContractMismatch,
    DuplicateRegistration,
    EngineError,
    ManifestError,
    ProviderFailure,
    UnknownKey,
    UnknownOperation,
)
from .facade import ResolutionFacade, ResolutionResult
from .registry import KeyView, RegistrationEntry, StrategyRegistry

__all__ = [
    "AsyncOperationError",
    "Contract",
    "ContractDefinitionError",
    "ContractMismatch",
    "DuplicateRegistration",
    "EngineConfig",
    "EngineError",
    "FunctionProvider",
    "KeyView",
    "ManifestError",
    "Number",
    "Operation",
    "Param",
    "ProviderFailure",
    "RegistrationEntry",
    "ResolutionFacade",
    "ResolutionResult",
    "StrategyRegistry",
    "UnknownKey",
    "UnknownOperation",
    "check_provider",
    "define_contract",
    "operation",
    "satisfies",
]

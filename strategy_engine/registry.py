from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from .config import EngineConfig
from .contracts import Contract, check_provider
from .errors import ContractMismatch, DuplicateRegistration, UnknownKey
from .logging_utils import get_json_logger

ContractRef = Contract | str


def utcnow_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat()


def _name(contract: ContractRef) -> str:
    return contract.name if isinstance(contract, Contract) else str(contract)


@dataclass(frozen=True)
class RegistrationEntry:
    key: str
    contract: Contract
    provider: Any
    registered_utc: str = field(default_factory=utcnow_iso)


class KeyView:
    """Restartable view of the keys registered against one contract.

    Every iteration walks a fresh snapshot of the registry table, so it
    always terminates and never sees a half-applied registration.
    """

    def __init__(self, registry: StrategyRegistry, contract: str) -> None:
        self._registry = registry
        self._contract = contract

    def _snapshot(self) -> dict[str, RegistrationEntry]:
        return self._registry._table.get(self._contract, {})

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._snapshot()))

    def __len__(self) -> int:
        return len(self._snapshot())

    def __contains__(self, key: object) -> bool:
        return key in self._snapshot()

    def __repr__(self) -> str:
        return f"KeyView({self._contract!r}, {list(self)!r})"


class StrategyRegistry:
    """Maps (key, contract) to exactly one provider.

    Providers are checked structurally against the contract when they are
    registered; resolution is a plain dictionary lookup. Writers are
    serialized by a lock and publish a new table copy, readers never lock.
    There is no override: re-registering a live (key, contract) pair is an
    error until the entry is explicitly unregistered.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.cfg = config or EngineConfig()
        self._lock = threading.Lock()
        # contract name -> key -> entry; replaced wholesale on every write
        self._table: dict[str, dict[str, RegistrationEntry]] = {}
        self._contracts: dict[str, Contract] = {}
        self._log = get_json_logger("registry", level=self.cfg.log_level)

    def _logger(self, op: str):
        return self._log.bind(op=op)

    # ----- writes -----

    def register(self, key: str, contract: Contract, provider: Any) -> RegistrationEntry:
        """Register ``provider`` under ``key`` for ``contract``.

        Raises DuplicateRegistration if the pair is already live and
        ContractMismatch if the provider does not satisfy the contract.
        """
        return self.register_all(key, provider, [contract])[0]

    def register_all(
        self, key: str, provider: Any, contracts: Iterable[Contract]
    ) -> list[RegistrationEntry]:
        """Register one provider under several contracts; all or nothing."""
        _check_key(key)
        contracts = list(contracts)
        if not contracts:
            raise ValueError("at least one contract is required")
        names = [c.name for c in contracts]
        if len(set(names)) != len(names):
            raise ValueError(f"contract listed twice for '{key}': {names}")
        logger = self._logger("register")

        problems = {
            c.name: check_provider(c, provider, check_annotations=self.cfg.check_annotations)
            for c in contracts
        }

        with self._lock:
            for c in contracts:
                if key in self._table.get(c.name, {}):
                    logger.warning(
                        "register_rejected",
                        extra={"key": key, "contract": c.name, "reason": "duplicate"},
                    )
                    raise DuplicateRegistration(key, c.name)
            for c in contracts:
                pinned = self._contracts.get(c.name)
                if pinned is not None and pinned != c:
                    problems[c.name].append(
                        f"contract '{c.name}' was published with operations "
                        f"{pinned.operation_names}, got {c.operation_names}"
                    )
                if problems[c.name]:
                    logger.warning(
                        "register_rejected",
                        extra={"key": key, "contract": c.name, "problems": problems[c.name]},
                    )
                    raise ContractMismatch(key, c.name, problems[c.name])

            table = dict(self._table)
            pinned_contracts = dict(self._contracts)
            entries: list[RegistrationEntry] = []
            for c in contracts:
                entry = RegistrationEntry(key=key, contract=c, provider=provider)
                table[c.name] = {**table.get(c.name, {}), key: entry}
                pinned_contracts.setdefault(c.name, c)
                entries.append(entry)
            self._contracts = pinned_contracts
            self._table = table

        for entry in entries:
            logger.info(
                "register",
                extra={
                    "key": key,
                    "contract": entry.contract.name,
                    "provider": type(provider).__name__,
                },
            )
        return entries

    def unregister(self, key: str, contract: ContractRef) -> RegistrationEntry:
        """Remove a registration; raises UnknownKey if it does not exist."""
        name = _name(contract)
        with self._lock:
            current = self._table.get(name, {})
            if key not in current:
                raise UnknownKey(key, name)
            entry = current[key]
            remaining = {k: v for k, v in current.items() if k != key}
            table = dict(self._table)
            if remaining:
                table[name] = remaining
            else:
                # no provider depends on the descriptor any more
                del table[name]
                self._contracts = {n: c for n, c in self._contracts.items() if n != name}
            self._table = table
        self._logger("unregister").info("unregister", extra={"key": key, "contract": name})
        return entry

    # ----- reads -----

    def resolve(self, key: str, contract: ContractRef) -> Any:
        """Return the provider registered for (key, contract).

        Raises UnknownKey when there is no such entry; there is no fallback.
        """
        return self.entry(key, contract).provider

    def entry(self, key: str, contract: ContractRef) -> RegistrationEntry:
        name = _name(contract)
        entry = self._table.get(name, {}).get(key)
        if entry is None:
            raise UnknownKey(key, name)
        if isinstance(contract, Contract) and contract is not entry.contract and contract != entry.contract:
            raise ContractMismatch(
                key,
                name,
                [f"requested operations {contract.operation_names} differ from published "
                 f"{entry.contract.operation_names}"],
            )
        return entry

    def list(self, contract: ContractRef) -> KeyView:
        """Keys registered for ``contract``; for diagnostics, never for selection."""
        return KeyView(self, _name(contract))

    def contract(self, name: str) -> Contract | None:
        return self._contracts.get(name)

    def contracts(self) -> tuple[Contract, ...]:
        snapshot = self._contracts
        return tuple(snapshot[n] for n in sorted(snapshot))

    def contracts_for(self, key: str) -> tuple[str, ...]:
        table = self._table
        return tuple(sorted(name for name, keys in table.items() if key in keys))

    def entries(self) -> tuple[RegistrationEntry, ...]:
        table = self._table
        return tuple(table[name][key] for name in sorted(table) for key in sorted(table[name]))

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        key, contract = item
        return key in self._table.get(_name(contract), {})

    def __len__(self) -> int:
        return sum(len(keys) for keys in self._table.values())


def _check_key(key: str) -> None:
    if not isinstance(key, str) or not key.strip():
        raise ValueError(f"registration key must be a non-empty string, got {key!r}")

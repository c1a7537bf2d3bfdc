"""Sample contracts and providers.

Small, self-contained strategies used by the CLI demo manifest and the test
suite: invoice rates, shapes, worker capabilities and data sources.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from .contracts import Number, define_contract, operation
from .facade import ResolutionFacade
from .registry import RegistrationEntry, StrategyRegistry

# --- invoice rates ---

RateApplier = define_contract(
    "RateApplier",
    operation("apply", [("amount", Number)], returns=Number, raises=(ValueError,)),
    description="Apply a rate to a net amount.",
)


@dataclass(frozen=True)
class RateProvider:
    multiplier: float

    def apply(self, amount: float) -> float:
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        return amount * self.multiplier


@dataclass(frozen=True)
class TaxFreeRate:
    def apply(self, amount: float) -> float:
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        return amount


@dataclass(frozen=True)
class Invoice:
    number: str
    amount: float


class InvoiceCalculator:
    """Totals invoices with whichever rate strategy the caller names."""

    def __init__(self, facade: ResolutionFacade) -> None:
        self._facade = facade

    def total(self, invoice: Invoice, rate_key: str) -> float:
        return self._facade.invoke(rate_key, RateApplier, "apply", invoice.amount)


# --- shapes ---

AreaComputable = define_contract(
    "AreaComputable",
    operation("area", returns=Number),
    description="Anything with an area.",
)


@dataclass(frozen=True)
class Rectangle:
    width: float
    height: float

    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class Square:
    side: float

    def area(self) -> float:
        return self.side * self.side


# --- worker capabilities ---

Workable = define_contract("Workable", operation("work", [("task", str)], returns=str))
Feedable = define_contract("Feedable", operation("eat", [("meal", str)], returns=str))


@dataclass
class Human:
    name: str

    def work(self, task: str) -> str:
        return f"{self.name} works on {task}"

    def eat(self, meal: str) -> str:
        return f"{self.name} eats {meal}"


@dataclass
class Robot:
    model: str

    def work(self, task: str) -> str:
        return f"{self.model} executes {task}"


# --- data sources ---

Row = dict[str, Any]

DataSource = define_contract(
    "DataSource",
    operation("fetch", [("query", str)], returns=list[Row], raises=(LookupError,)),
)

AsyncDataSource = define_contract(
    "AsyncDataSource",
    operation("fetch", [("query", str)], returns=list[Row], raises=(LookupError,), asynchronous=True),
)


@dataclass
class InMemoryDataSource:
    """Rows grouped by table name; the query is the table name."""

    tables: dict[str, list[Row]] = field(default_factory=dict)

    def fetch(self, query: str) -> list[Row]:
        if query not in self.tables:
            raise LookupError(f"unknown table '{query}'")
        return [dict(row) for row in self.tables[query]]


@dataclass
class DelayedDataSource:
    tables: dict[str, list[Row]] = field(default_factory=dict)
    delay_sec: float = 0.0

    async def fetch(self, query: str) -> list[Row]:
        await asyncio.sleep(self.delay_sec)
        if query not in self.tables:
            raise LookupError(f"unknown table '{query}'")
        return [dict(row) for row in self.tables[query]]


class SalesReport:
    """Sums the ``total`` column of a table read from an injected data source."""

    def __init__(self, facade: ResolutionFacade, source_key: str) -> None:
        self._facade = facade
        self._source_key = source_key

    def total(self, table: str) -> float:
        rows = self._facade.invoke(self._source_key, DataSource, "fetch", table)
        return sum(row["total"] for row in rows)


SAMPLE_SALES = {
    "sales": [
        {"id": 1, "total": 120.0},
        {"id": 2, "total": 80.5},
    ]
}


def register_samples(registry: StrategyRegistry) -> list[RegistrationEntry]:
    entries: list[RegistrationEntry] = []
    entries.append(registry.register("standard", RateApplier, RateProvider(1.20)))
    entries.append(registry.register("reduced", RateApplier, RateProvider(1.06)))
    entries.append(registry.register("tax_free", RateApplier, TaxFreeRate()))
    entries.append(registry.register("rectangle", AreaComputable, Rectangle(width=5, height=4)))
    entries.append(registry.register("square", AreaComputable, Square(side=4)))
    entries.extend(registry.register_all("human", Human("Ada"), [Workable, Feedable]))
    entries.append(registry.register("robot", Workable, Robot("R2")))
    entries.append(registry.register("memory", DataSource, InMemoryDataSource(SAMPLE_SALES)))
    return entries

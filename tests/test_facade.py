from __future__ import annotations

import pytest

from strategy_engine.config import EngineConfig
from strategy_engine.contracts import FunctionProvider, Number, define_contract, operation
from strategy_engine.errors import (
    AsyncOperationError,
    ContractMismatch,
    DuplicateRegistration,
    ProviderFailure,
    UnknownKey,
    UnknownOperation,
)
from strategy_engine.facade import ResolutionFacade, ResolutionResult, _adapter
from strategy_engine.registry import StrategyRegistry
from strategy_engine.samples import (
    AreaComputable,
    AsyncDataSource,
    DataSource,
    DelayedDataSource,
    InMemoryDataSource,
    Invoice,
    InvoiceCalculator,
    RateApplier,
    RateProvider,
    Rectangle,
    SalesReport,
    Square,
    TaxFreeRate,
)


def test_standard_rate_applies_twenty_percent(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("standard", RateApplier, FunctionProvider(apply=lambda x: x * 1.20))
    assert facade.invoke("standard", RateApplier, "apply", 100) == pytest.approx(120)


def test_tax_free_rate_is_identity(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("tax_free", RateApplier, FunctionProvider(apply=lambda x: x))
    assert facade.invoke("tax_free", RateApplier, "apply", 100) == 100

    with pytest.raises(DuplicateRegistration):
        registry.register("tax_free", RateApplier, TaxFreeRate())
    assert facade.invoke("tax_free", RateApplier, "apply", 100) == 100


def test_shapes_substitute_without_surprises(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("rectangle", AreaComputable, Rectangle(width=5, height=4))
    registry.register("square", AreaComputable, Square(side=4))

    assert facade.invoke("rectangle", AreaComputable, "area") == 20
    assert facade.invoke("square", AreaComputable, "area") == 16
    # Repeated calls are not coupled through hidden state
    assert facade.invoke("rectangle", AreaComputable, "area") == 20


def test_undeclared_operation_runs_no_provider_code(
    registry: StrategyRegistry, facade: ResolutionFacade
) -> None:
    calls: list[str] = []

    class CountingSquare:
        def area(self) -> float:
            calls.append("area")
            return 16.0

        def perimeter(self) -> float:
            calls.append("perimeter")
            return 16.0

    registry.register("square", AreaComputable, CountingSquare())
    with pytest.raises(UnknownOperation) as excinfo:
        facade.invoke("square", AreaComputable, "perimeter")
    assert excinfo.value.operation == "perimeter"
    assert calls == []


def test_unknown_key_propagates(facade: ResolutionFacade) -> None:
    with pytest.raises(UnknownKey):
        facade.invoke("premium", RateApplier, "apply", 100)


def test_declared_provider_failure_is_wrapped(sample_registry: StrategyRegistry) -> None:
    facade = ResolutionFacade(sample_registry)
    with pytest.raises(ProviderFailure) as excinfo:
        facade.invoke("standard", RateApplier, "apply", -5)

    failure = excinfo.value
    assert failure.key == "standard"
    assert failure.contract == "RateApplier"
    assert failure.operation == "apply"
    assert failure.declared is True
    assert isinstance(failure.__cause__, ValueError)
    assert "amount must be non-negative" in failure.detail


def test_undeclared_provider_failure_is_flagged(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("broken", RateApplier, FunctionProvider(apply=lambda x: x / 0))
    with pytest.raises(ProviderFailure) as excinfo:
        facade.invoke("broken", RateApplier, "apply", 1)
    assert excinfo.value.declared is False
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_wrong_output_shape_is_contract_mismatch(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("stringly", RateApplier, FunctionProvider(apply=lambda x: "120"))
    with pytest.raises(ContractMismatch) as excinfo:
        facade.invoke("stringly", RateApplier, "apply", 100)
    assert "returned str, expected number" in excinfo.value.problems[0]


def test_output_validation_can_be_disabled() -> None:
    registry = StrategyRegistry(EngineConfig(validate_outputs=False))
    registry.register("stringly", RateApplier, FunctionProvider(apply=lambda x: "120"))
    assert ResolutionFacade(registry).invoke("stringly", RateApplier, "apply", 100) == "120"


def test_output_is_returned_unchanged(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    rows = [{"id": 1, "total": 3.5}]
    registry.register("fixed", DataSource, FunctionProvider(fetch=lambda query: rows))
    assert facade.invoke("fixed", DataSource, "fetch", "sales") is rows


def test_execute_reports_diagnostics(sample_registry: StrategyRegistry) -> None:
    result = ResolutionFacade(sample_registry).execute("square", "AreaComputable", "area")
    assert isinstance(result, ResolutionResult)
    assert (result.key, result.contract, result.operation, result.output) == (
        "square",
        "AreaComputable",
        "area",
        16,
    )
    assert result.diagnostics["elapsed_ms"] >= 0
    assert len(result.diagnostics["correlation_id"]) == 32


def test_multi_parameter_input_binding(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    Scaler = define_contract(
        "Scaler", operation("scale", [("value", Number), ("factor", Number)], returns=Number)
    )
    registry.register("mul", Scaler, FunctionProvider(scale=lambda value, factor: value * factor))

    assert facade.invoke("mul", Scaler, "scale", {"value": 3, "factor": 4}) == 12
    assert facade.invoke("mul", Scaler, "scale", (3, 5)) == 15
    with pytest.raises(TypeError):
        facade.invoke("mul", Scaler, "scale", {"value": 3})
    with pytest.raises(TypeError):
        facade.invoke("mul", Scaler, "scale", 3)


def test_zero_parameter_operation_rejects_input(sample_registry: StrategyRegistry) -> None:
    with pytest.raises(TypeError):
        ResolutionFacade(sample_registry).invoke("square", AreaComputable, "area", 4)


def test_async_operation_requires_ainvoke(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("slow", AsyncDataSource, DelayedDataSource())
    with pytest.raises(AsyncOperationError):
        facade.invoke("slow", AsyncDataSource, "fetch", "sales")


def test_missing_operation_after_registration_is_consistency_fault(
    registry: StrategyRegistry, facade: ResolutionFacade
) -> None:
    provider = FunctionProvider(area=lambda: 1)
    registry.register("fragile", AreaComputable, provider)
    del provider.area
    with pytest.raises(UnknownOperation):
        facade.invoke("fragile", AreaComputable, "area")


def test_invoice_totals_follow_the_selected_rate(sample_registry: StrategyRegistry) -> None:
    calculator = InvoiceCalculator(ResolutionFacade(sample_registry))
    invoice = Invoice(number="INV-1", amount=100)

    assert calculator.total(invoice, "standard") == pytest.approx(120)
    assert calculator.total(invoice, "reduced") == pytest.approx(106)
    assert calculator.total(invoice, "tax_free") == 100


def test_report_data_source_is_swapped_without_touching_consumer(
    sample_registry: StrategyRegistry,
) -> None:
    report = SalesReport(ResolutionFacade(sample_registry), source_key="memory")
    assert report.total("sales") == pytest.approx(200.5)

    sample_registry.unregister("memory", DataSource)
    sample_registry.register(
        "memory", DataSource, InMemoryDataSource({"sales": [{"id": 9, "total": 1.5}]})
    )
    assert report.total("sales") == pytest.approx(1.5)

    with pytest.raises(ProviderFailure) as excinfo:
        report.total("refunds")
    assert excinfo.value.declared is True


def test_rate_provider_can_be_built_directly(registry: StrategyRegistry, facade: ResolutionFacade) -> None:
    registry.register("custom", RateApplier, RateProvider(multiplier=2))
    assert facade.invoke("custom", RateApplier, "apply", 21) == 42


def test_output_validators_are_built_once_per_shape() -> None:
    assert _adapter(Number) is _adapter(Number)
    assert _adapter(list[dict[str, int]]) is _adapter(list[dict[str, int]])

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from strategy_engine.errors import DuplicateRegistration, ManifestError
from strategy_engine.facade import ResolutionFacade
from strategy_engine.manifest import apply_manifest, import_target, load_into, load_manifest
from strategy_engine.manifest_models import ManifestSchema
from strategy_engine.registry import StrategyRegistry
from strategy_engine.samples import AreaComputable, RateApplier, Workable


def _write(tmp_path: Path, data: dict[str, Any]) -> Path:
    path = tmp_path / "manifest.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_sample_manifest_registers_providers(registry: StrategyRegistry, samples_manifest: Path) -> None:
    entries = load_into(registry, samples_manifest)

    assert len(entries) == 6
    assert list(registry.list(RateApplier)) == ["reduced", "standard", "tax_free"]
    assert list(registry.list(AreaComputable)) == ["rectangle", "square"]
    assert list(registry.list(Workable)) == ["robot"]

    facade = ResolutionFacade(registry)
    assert facade.invoke("standard", RateApplier, "apply", 100) == pytest.approx(120)
    assert facade.invoke("square", AreaComputable, "area") == 16


def test_load_manifest_valid(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "version": 1,
            "updated_utc": "2026-10-19T00:00:00Z",
            "registrations": [
                {
                    "key": "square",
                    "contract": "strategy_engine.samples:AreaComputable",
                    "provider": "strategy_engine.samples:Square",
                    "kwargs": {"side": 3},
                }
            ],
        },
    )
    manifest = load_manifest(path)
    assert manifest.version == 1
    assert manifest.registrations[0].kwargs == {"side": 3}


def test_load_manifest_invalid_structure(tmp_path: Path) -> None:
    path = _write(tmp_path, {"registrations": [{"key": "square"}]})
    with pytest.raises(ValidationError):
        load_manifest(path)


def test_target_must_name_module_and_attribute() -> None:
    with pytest.raises(ValidationError):
        ManifestSchema(
            version=1,
            registrations=[{"key": "k", "contract": "strategy_engine.samples", "provider": "x:y"}],
        )


def test_load_manifest_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_manifest(tmp_path / "absent.json")


def test_import_target_errors() -> None:
    with pytest.raises(ManifestError):
        import_target("strategy_engine.does_not_exist:Thing")
    with pytest.raises(ManifestError):
        import_target("strategy_engine.samples:Nope")
    assert import_target("strategy_engine.samples:RateApplier") is RateApplier


def test_contract_target_must_be_a_contract(registry: StrategyRegistry) -> None:
    manifest = ManifestSchema(
        version=1,
        registrations=[
            {
                "key": "square",
                "contract": "strategy_engine.samples:Square",
                "provider": "strategy_engine.samples:Square",
                "kwargs": {"side": 2},
            }
        ],
    )
    with pytest.raises(ManifestError):
        apply_manifest(registry, manifest)


def test_bad_provider_kwargs(registry: StrategyRegistry) -> None:
    manifest = ManifestSchema(
        version=1,
        registrations=[
            {
                "key": "square",
                "contract": "strategy_engine.samples:AreaComputable",
                "provider": "strategy_engine.samples:Square",
                "kwargs": {"edge": 2},
            }
        ],
    )
    with pytest.raises(ManifestError):
        apply_manifest(registry, manifest)


def test_duplicate_in_manifest_fails_fast(registry: StrategyRegistry) -> None:
    spec = {
        "key": "tax_free",
        "contract": "strategy_engine.samples:RateApplier",
        "provider": "strategy_engine.samples:TaxFreeRate",
    }
    manifest = ManifestSchema(version=1, registrations=[spec, spec])
    with pytest.raises(DuplicateRegistration):
        apply_manifest(registry, manifest)
    assert list(registry.list(RateApplier)) == ["tax_free"]

from __future__ import annotations

import importlib
import inspect
import json
import uuid
from pathlib import Path
from typing import Any

from .contracts import Contract
from .errors import ManifestError
from .logging_utils import get_json_logger
from .manifest_models import ManifestSchema, RegistrationSpec
from .registry import RegistrationEntry, StrategyRegistry


def load_manifest(path: Path) -> ManifestSchema:
    """Load a registration manifest from JSON with Pydantic validation.

    Raises FileNotFoundError if missing, JSONDecodeError on invalid JSON.
    Raises ValidationError if the manifest structure is invalid.
    """
    cid = uuid.uuid4().hex
    logger = get_json_logger("manifest", static_fields={"correlation_id": cid, "op": "load_manifest"})
    logger.info("start", extra={"path": str(path)})

    data = json.loads(Path(path).read_text(encoding="utf-8"))
    manifest = ManifestSchema(**data)

    logger.info("done", extra={"registrations": len(manifest.registrations)})
    return manifest


def import_target(target: str) -> Any:
    """Import ``package.module:attr`` (``attr`` may be dotted)."""
    module_name, _, attr_path = target.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise ManifestError(f"cannot import module '{module_name}' for {target!r}") from exc
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise ManifestError(f"'{module_name}' has no attribute '{attr_path}'") from exc
    return obj


def build_provider(spec: RegistrationSpec) -> Any:
    target = import_target(spec.provider)
    if inspect.isclass(target) or spec.kwargs:
        if not callable(target):
            raise ManifestError(f"provider {spec.provider!r} takes kwargs but is not callable")
        try:
            return target(**spec.kwargs)
        except TypeError as exc:
            raise ManifestError(f"cannot build provider {spec.provider!r}: {exc}") from exc
    return target


def apply_manifest(registry: StrategyRegistry, manifest: ManifestSchema) -> list[RegistrationEntry]:
    """Register every manifest entry; the first registration error aborts."""
    cid = uuid.uuid4().hex
    logger = get_json_logger("manifest", static_fields={"correlation_id": cid, "op": "apply_manifest"})
    logger.info("start", extra={"registrations": len(manifest.registrations)})

    entries: list[RegistrationEntry] = []
    for spec in manifest.registrations:
        contract = import_target(spec.contract)
        if not isinstance(contract, Contract):
            raise ManifestError(f"{spec.contract!r} is not a Contract")
        provider = build_provider(spec)
        entries.append(registry.register(spec.key, contract, provider))

    logger.info("done", extra={"registered": len(entries)})
    return entries


def load_into(registry: StrategyRegistry, path: Path) -> list[RegistrationEntry]:
    return apply_manifest(registry, load_manifest(path))

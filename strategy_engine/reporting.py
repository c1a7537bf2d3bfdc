from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .contracts import shape_name
from .logging_utils import get_json_logger
from .registry import StrategyRegistry


def _csv(values: list[Any] | tuple[Any, ...] | None, dash: str = "-") -> str:
    if not values:
        return dash
    return ", ".join(str(v) for v in values)


def _cell(value: Any, dash: str = "-") -> str:
    text = str(value) if value not in (None, "") else dash
    return text.replace("|", "\\|")


def generate_markdown(registry: StrategyRegistry) -> str:
    """Build a Markdown overview of published contracts and their providers."""
    cid = uuid.uuid4().hex
    logger = get_json_logger("reporting", static_fields={"correlation_id": cid, "op": "generate_markdown"})
    contracts = registry.contracts()
    logger.info("start", extra={"contract_count": len(contracts), "entry_count": len(registry)})
    generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

    lines: list[str] = []
    lines.append("# Strategy registry")
    lines.append("")
    lines.append(f"Generated (UTC): {generated}")
    lines.append("")

    lines.append("## Contracts")
    lines.append("")
    lines.append("| Contract | Operation | Signature | Declared failures | Providers |")
    lines.append("|---|---|---|---|---|")
    for contract in contracts:
        keys = list(registry.list(contract))
        for op in contract.operations:
            lines.append(
                "| "
                + " | ".join(
                    [
                        _cell(contract.name),
                        _cell(op.name),
                        _cell(op.signature()),
                        _csv([e.__name__ for e in op.raises]),
                        _csv(keys),
                    ]
                )
                + " |"
            )
    lines.append("")

    lines.append("## Providers")
    lines.append("")
    lines.append("| Key | Contract | Provider | Registered (UTC) |")
    lines.append("|---|---|---|---|")
    for entry in registry.entries():
        lines.append(
            "| "
            + " | ".join(
                [
                    _cell(entry.key),
                    _cell(entry.contract.name),
                    _cell(type(entry.provider).__name__),
                    _cell(entry.registered_utc),
                ]
            )
            + " |"
        )
    lines.append("")

    logger.info("done")
    return "\n".join(lines)


def write_markdown(registry: StrategyRegistry, out_path: Path) -> None:
    md = generate_markdown(registry)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(md, encoding="utf-8")


def describe_operation_shapes(registry: StrategyRegistry) -> dict[str, dict[str, Any]]:
    """Contract name -> operation name -> input/output shape names (JSON friendly)."""
    out: dict[str, dict[str, Any]] = {}
    for contract in registry.contracts():
        out[contract.name] = {
            op.name: {
                "params": {p.name: shape_name(p.shape) for p in op.params},
                "returns": shape_name(op.returns),
                "asynchronous": op.asynchronous,
            }
            for op in contract.operations
        }
    return out

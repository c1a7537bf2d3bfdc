from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .config import EngineConfig
from .errors import EngineError
from .facade import ResolutionFacade
from .manifest import load_into
from .registry import StrategyRegistry
from .reporting import describe_operation_shapes, generate_markdown


def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _build(manifest: Path) -> StrategyRegistry:
    registry = StrategyRegistry(EngineConfig.from_env())
    load_into(registry, manifest)
    return registry


def _fail(exc: Exception) -> int:
    print(json.dumps({"error": type(exc).__name__, "detail": str(exc)}), file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Strategy engine CLI – describe and invoke registered providers")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_desc = sub.add_parser("describe", help="Load a manifest and render the registry as Markdown")
    p_desc.add_argument(
        "--manifest",
        default=str(project_root() / "docs" / "samples_manifest.json"),
    )
    p_desc.add_argument("--out", default=None, help="Write Markdown here instead of stdout")
    p_desc.add_argument("--json", action="store_true", help="Print operation shapes as JSON")

    p_inv = sub.add_parser("invoke", help="Load a manifest and invoke one provider operation")
    p_inv.add_argument(
        "--manifest",
        default=str(project_root() / "docs" / "samples_manifest.json"),
    )
    p_inv.add_argument("--key", required=True)
    p_inv.add_argument("--contract", required=True)
    p_inv.add_argument("--operation", required=True)
    p_inv.add_argument("--input", default="null", help="JSON-encoded input value")

    args = ap.parse_args(argv)
    try:
        registry = _build(Path(args.manifest))
    except (EngineError, TypeError, ValueError, OSError) as exc:
        return _fail(exc)

    if args.cmd == "describe":
        if args.json:
            print(json.dumps(describe_operation_shapes(registry), indent=2))
            return 0
        md = generate_markdown(registry)
        if args.out:
            out = Path(args.out)
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text(md, encoding="utf-8")
            print(f"Wrote {out}")
        else:
            print(md)
        return 0

    if args.cmd == "invoke":
        facade = ResolutionFacade(registry)
        try:
            payload: Any = json.loads(args.input)
            result = facade.execute(args.key, args.contract, args.operation, payload)
        except (EngineError, TypeError, ValueError) as exc:
            return _fail(exc)
        print(json.dumps({"key": result.key, "output": result.output}, default=str))
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())

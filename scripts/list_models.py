"""List the models available for dispatch."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import argparse
import json

from multillm.registry import DEFAULT_REGISTRY, load_model_registry


def parse_args() -> argparse.Namespace:
    """Parse CLI args."""
    parser = argparse.ArgumentParser(description="List registered models")
    parser.add_argument("--category", default=None, help="Family, vendor or tag filter (default: all)")
    parser.add_argument("--detailed", action="store_true")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    parser.add_argument("--registry", type=Path, default=None)
    return parser.parse_args()


def main() -> None:
    """Program entry point."""
    args = parse_args()
    registry = load_model_registry(config_path=args.registry) if args.registry else DEFAULT_REGISTRY

    if not args.detailed:
        ids = registry.list_models(args.category)
        print(json.dumps(ids, indent=2) if args.json else "\n".join(ids))
        return

    descriptors = registry.list_models(args.category, detailed=True)
    if args.json:
        print(json.dumps([d.to_dict() for d in descriptors], indent=2))
        return

    for family, ids in registry.families([d.id for d in descriptors]).items():
        print(f">> {family} ({len(ids)})")
        for model_id in ids:
            descriptor = registry.get(model_id)
            context = descriptor.metadata.get("context_length", "?") if descriptor else "?"
            tags = ", ".join(descriptor.tags) if descriptor else ""
            print(f"   - {model_id}  [ctx={context}] {tags}")


if __name__ == "__main__":
    main()

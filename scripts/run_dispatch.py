"""Send one prompt to several models and print the aggregated result."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import argparse
import asyncio
import json

from dotenv import load_dotenv

from multillm.api import adispatch
from multillm.invoker import InvocationParams
from multillm.registry import DEFAULT_REGISTRY, load_model_registry
from multillm.results import BatchResult
from multillm.selector import SelectionRequest
from multillm.utils.logging_config import setup_logging


def parse_args() -> argparse.Namespace:
    """Parse CLI args."""
    parser = argparse.ArgumentParser(description="Run one prompt across multiple LLMs")
    parser.add_argument("--prompt", required=True, help="Prompt text, or @path to read it from a file")
    parser.add_argument("--models", nargs="+", default=None, help="Explicit model ids")
    parser.add_argument("--max-models", type=int, default=6)
    parser.add_argument("--category", default=None, help="Family, vendor or tag filter")
    parser.add_argument("--random", action="store_true", help="Uniform random pick from the pool")
    parser.add_argument("--balanced", action="store_true", help="Round-robin pick across families")
    parser.add_argument("--exclude", nargs="*", default=[])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--sequential", action="store_true")
    parser.add_argument("--no-stream", action="store_true")
    parser.add_argument("--max-tokens", type=int, default=1024)
    parser.add_argument("--temperature", type=float, default=0.7)
    parser.add_argument("--timeout", type=float, default=300.0)
    parser.add_argument("--max-retries", type=int, default=0)
    parser.add_argument("--max-concurrent", type=int, default=6)
    parser.add_argument("--registry", type=Path, default=None, help="YAML registry overriding the built-in one")
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--output", type=Path, default=None, help="Write the full result as JSON")
    parser.add_argument("--log-dir", type=Path, default=None)
    return parser.parse_args()


def _read_prompt(value: str) -> str:
    if value.startswith("@"):
        return Path(value[1:]).read_text(encoding="utf-8")
    return value


async def async_main(args: argparse.Namespace) -> BatchResult:
    """Resolve models and run the batch."""
    logger, _ = setup_logging(log_dir=args.log_dir, name="multillm")
    registry = load_model_registry(config_path=args.registry) if args.registry else DEFAULT_REGISTRY

    selection = SelectionRequest(
        models=list(args.models or []),
        max_models=args.max_models,
        category_filter=args.category,
        random=args.random,
        balanced=args.balanced,
        exclude=list(args.exclude),
        seed=args.seed,
    )
    params = InvocationParams(
        max_tokens=args.max_tokens,
        temperature=args.temperature,
        timeout_seconds=args.timeout,
        streaming=not args.no_stream,
        max_retries=args.max_retries,
    )

    result = await adispatch(
        _read_prompt(args.prompt),
        selection=selection,
        params=params,
        parallel=not args.sequential,
        registry=registry,
        max_concurrent=args.max_concurrent,
        dry_run=args.dry_run,
        logger=logger,
    )

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(json.dumps(result.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
        logger.info("Result written to %s", args.output)
    return result


def main() -> None:
    """Program entry point."""
    load_dotenv()
    args = parse_args()
    result = asyncio.run(async_main(args))

    for item in result.results:
        print(f"\n### {item.model}")
        print(item.response_text if item.success else f"[ERROR] {item.error}")
    print()
    print(result.format_report())


if __name__ == "__main__":
    main()

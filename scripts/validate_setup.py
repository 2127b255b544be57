"""Pre-flight validation for credentials and a tiny dispatch."""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import argparse
import asyncio
import os
from typing import Any

from dotenv import load_dotenv

from multillm.api import adispatch_random_small
from multillm.invoker import InvocationParams
from multillm.models.providers import DEFAULT_PROVIDERS
from multillm.utils.logging_config import mask_secret, setup_logging


def parse_args() -> argparse.Namespace:
    """Parse CLI options."""
    parser = argparse.ArgumentParser(description="Validate credentials and run a small dispatch")
    parser.add_argument("--dry-run", action="store_true", help="Use mocked gateway responses")
    parser.add_argument("--seed", type=int, default=42)
    return parser.parse_args()


def check_python() -> str:
    """Return Python-version status message."""
    if sys.version_info < (3, 10):
        return "Warning: Python 3.10+ is required."
    return "Python version is compatible (3.10+)."


def check_env() -> dict[str, str]:
    """Report which provider keys are present, masked."""
    return {
        name: mask_secret(os.getenv(config.api_key_env))
        for name, config in DEFAULT_PROVIDERS.items()
    }


async def validate_dispatch(*, dry_run: bool, seed: int) -> dict[str, Any]:
    """Send a one-line prompt to five balanced models."""
    logger, _ = setup_logging(name="validate_setup")
    result = await adispatch_random_small(
        "Reply with the single word: ready",
        seed=seed,
        params=InvocationParams(max_tokens=16, temperature=0.0, timeout_seconds=60, streaming=False),
        dry_run=dry_run,
        logger=logger,
    )
    return result.summary.to_dict()


def main() -> None:
    """Program entry point."""
    load_dotenv()
    args = parse_args()

    print(check_python())
    for provider, masked in check_env().items():
        print(f"{provider}: key {masked}")

    summary = asyncio.run(validate_dispatch(dry_run=args.dry_run, seed=args.seed))
    print(f"Dispatch success rate: {summary['success_rate']:.0%} ({summary['successful']}/{summary['total_models']})")
    if summary["failed"]:
        print("Failed models: " + ", ".join(summary["failed_model_names"]))
        sys.exit(1)


if __name__ == "__main__":
    main()

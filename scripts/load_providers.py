#!/usr/bin/env python3
"""Load a provider list and print the normalized messages.

The provider file is a JSON array of provider definitions, e.g.::

    [
      {"id": "onboarding", "type": "local", "messages": [{"id": "welcome"}]},
      {"id": "snippets", "type": "remote", "url": "https://example.com/m.json",
       "updateCycleInMs": 3600000}
    ]

Configuration comes from ``MSGCAT_*`` environment variables; ``--cache``
and ``--timeout`` override them.  Results are printed as one JSON object
keyed by provider id.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydantic import ValidationError  # noqa: E402

from pymsgcat import LoaderConfig, MessageLoader, MsgCatConfigError, parse_provider  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load message providers and print their messages.")
    parser.add_argument("providers", type=Path, help="JSON file holding a list of provider definitions")
    parser.add_argument("--cache", type=Path, default=None, help="JSON cache file (default: in-memory)")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _load_definitions(path: Path) -> list[Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"{path} must hold a JSON array of providers")
    return [parse_provider(item) for item in data]


async def _run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {}
    if args.cache is not None:
        overrides["cache_path"] = args.cache
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout

    try:
        config = LoaderConfig.from_env(**overrides)
        providers = _load_definitions(args.providers)
    except (MsgCatConfigError, OSError, ValueError, ValidationError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    async with MessageLoader(config) as loader:
        results = await loader.load_all(providers)

    output = {provider_id: result.model_dump(by_alias=True) for provider_id, result in results.items()}
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())

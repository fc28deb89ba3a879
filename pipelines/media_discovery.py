"""Command-line runner for the media discovery actions."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Sequence

from app.services.errors import DiscoveryError, DiscoveryRequestError
from app.services.media_discovery import MediaDiscoveryService

logger = logging.getLogger("pipelines.media_discovery")

_COMMAND_ACTIONS = {
    "scrape": "scrape_outlet",
    "verify": "verify_contacts",
    "categorize": "categorize_contacts",
    "monitor": "monitor_updates",
}


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Discover, verify and profile journalist contacts.")
    parser.add_argument("--tenant-id", required=True, help="Tenant scope for every read and write.")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent for printed results.")
    commands = parser.add_subparsers(dest="command", required=True)

    scrape = commands.add_parser("scrape", help="Scrape an outlet's staff pages.")
    scrape.add_argument("outlet_url", help="Outlet website, e.g. https://example.com")

    for name, help_text in (
        ("verify", "Verify stored contacts."),
        ("categorize", "Build beat and outreach intelligence for stored contacts."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("contact_ids", nargs="+", help="Contact ids to process.")

    commands.add_parser("monitor", help="Report monitoring status.")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> dict[str, Any]:
    request: dict[str, Any] = {
        "action": _COMMAND_ACTIONS[args.command],
        "tenant_id": args.tenant_id,
    }
    if args.command == "scrape":
        request["outlet_url"] = args.outlet_url
    elif args.command in ("verify", "categorize"):
        request["contact_ids"] = list(args.contact_ids)
    return request


async def _run_async(
    request: dict[str, Any], service: MediaDiscoveryService | None = None
) -> dict[str, Any]:
    owned = service is None
    service = service or MediaDiscoveryService.from_settings()
    try:
        return await service.dispatch(request)
    finally:
        if owned:
            await service.aclose()


def main(
    argv: Sequence[str] | None = None, *, service: MediaDiscoveryService | None = None
) -> int:
    """CLI entrypoint."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    args = parse_args(argv if argv is not None else sys.argv[1:])
    request = build_request(args)
    try:
        result = asyncio.run(_run_async(request, service))
    except DiscoveryRequestError as exc:
        logger.error("Request rejected: %s (code=%s)", exc, exc.code)
        return 1
    except DiscoveryError as exc:
        logger.error("Media discovery failed: %s (code=%s)", exc, exc.code)
        return 1
    print(json.dumps(result, indent=args.indent))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())

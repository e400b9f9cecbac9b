"""
resync entry point
Loads one page of an admin resource and prints what the controller holds.

    python main.py news search=budget page=2
"""

import asyncio
import json
import sys

from loguru import logger

from resync.services.client import close_resource_client, get_resource_client
from resync.settings import global_settings
from resync.sync import SyncController


def parse_args(argv: list[str]) -> tuple[str, dict[str, str], int]:
    if not argv:
        raise SystemExit("usage: main.py ENDPOINT [filter=value ...] [page=N]")

    endpoint, filters, page = argv[0], {}, 1
    for arg in argv[1:]:
        key, _, value = arg.partition("=")
        if key == "page":
            page = int(value)
        else:
            filters[key] = value
    return endpoint, filters, page


async def main(argv: list[str]) -> int:
    endpoint, filters, page = parse_args(argv)
    logger.info(f"Loading {endpoint} from {global_settings.base_url}...")

    client = get_resource_client()
    try:
        async with SyncController(
            endpoint,
            client,
            initial_filters=filters,
            initial_pagination={"current_page": page},
            debug=global_settings.debug,
        ) as controller:
            await controller.reload()

            if controller.error:
                logger.error(f"Could not load {endpoint}: {controller.error}")
                return 1

            print(json.dumps(controller.as_dict(), indent=2, default=str))
            logger.info(f"Diagnostics: {controller.diagnostics.to_dict()}")
            return 0
    finally:
        await close_resource_client()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))

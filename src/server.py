"""Protean Engine runner for the orders domain.

Starts Engine workers that process events asynchronously:
- OutboxProcessor: polls the outbox table, publishes order events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes the webhook dispatcher

Usage:
    python src/server.py
    python src/server.py --test-mode   # drain pending work once and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine

from orders.utils.logging import configure_logging


def _get_domain():
    from orders.domain import orders

    orders.init()
    return orders


async def run(test_mode=False):
    engine = Engine(_get_domain(), test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Orders Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()

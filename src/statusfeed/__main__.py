"""CLI entry point for the status feed engine.

Runs the engine against the followings of an account, publishes a general
status with the configured key, or forgets the remembered identity. The
engine can run one bootstrap round (``--once``) or continuously with a
Prometheus metrics server.

Examples:
    ```bash
    python -m statusfeed watch --pubkey <hex> --once
    python -m statusfeed watch --config config/statusfeed.yaml --log-level DEBUG
    python -m statusfeed post "listening to records" --ttl 3600
    python -m statusfeed logout
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from statusfeed.core.exceptions import PublishingError, SigningError, StatusFeedError
from statusfeed.core.logger import Logger, StructuredFormatter
from statusfeed.core.metrics import MetricsServer
from statusfeed.core.worker import WorkerState
from statusfeed.core.yaml import load_yaml
from statusfeed.models import UserStatus
from statusfeed.services.engine import StatusFeed, UpdateStatusInput


DEFAULT_CONFIG = Path("config") / "statusfeed.yaml"
HISTORY_POLL_INTERVAL = 0.1

logger = Logger("cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="statusfeed",
        description="Nostr status feed synchronization engine",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Engine config path (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    watch = commands.add_parser("watch", help="Follow the statuses of an account's followings")
    watch.add_argument("--pubkey", help="Hex public key to watch (default: remembered or signer key)")
    watch.add_argument(
        "--once",
        action="store_true",
        help="Fetch history once and exit (default: run continuously)",
    )

    post = commands.add_parser("post", help="Publish a general status with the configured key")
    post.add_argument("content", help="Status text; an empty string clears the status")
    post.add_argument("--link", default="", help="Link attached to the status")
    post.add_argument("--ttl", type=int, default=None, help="Seconds until the status expires")

    commands.add_parser("logout", help="Forget the remembered identity")

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Install a ``StructuredFormatter`` on the root handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(path)


async def _login(feed: StatusFeed, pubkey: str | None, *, refresh: bool) -> str | None:
    if pubkey is not None:
        await feed.login(pubkey, refresh=refresh)
        return feed.pubkey
    restored = await feed.restore(refresh=refresh)
    if restored is not None:
        return restored
    if feed.signer is None:
        return None
    return await feed.login_with_signer(refresh=refresh)


async def _wait_for_history(feed: StatusFeed) -> None:
    worker = feed.status_worker
    while worker.running and worker.state is not WorkerState.LIVE:
        await asyncio.sleep(HISTORY_POLL_INTERVAL)
    await feed.profile_worker.wait()


def _log_feed(feed: StatusFeed, snapshot: Mapping[str, UserStatus]) -> None:
    for pubkey in feed.pubkeys_by_last_update():
        status = snapshot.get(pubkey)
        if status is None or status.general is None:
            continue
        logger.info(
            "status",
            name=feed.profile_of(pubkey).display_label,
            general=status.general.content,
            link=status.general.link_url,
        )


async def watch(feed: StatusFeed, pubkey: str | None, *, once: bool) -> int:
    """Run the engine for ``pubkey`` (or the remembered/signer identity)."""
    if once:
        async with feed:
            if await _login(feed, pubkey, refresh=True) is None:
                logger.error("no_identity")
                return 1
            await _wait_for_history(feed)
            _log_feed(feed, feed.statuses.value)
        logger.info("watch_completed", statuses=len(feed.statuses))
        return 0

    metrics_config = feed.config.metrics
    metrics_server = MetricsServer(metrics_config)
    await metrics_server.start()
    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        feed.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with feed:
            if await _login(feed, pubkey, refresh=False) is None:
                logger.error("no_identity")
                return 1
            feed.statuses.subscribe(lambda snapshot: _log_feed(feed, snapshot))
            await feed.run_forever()
        return 0
    except Exception as e:  # CLI error boundary for continuous mode
        logger.error("watch_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


async def post(feed: StatusFeed, content: str, link: str, ttl: int | None) -> int:
    """Publish a general status signed with the configured key."""
    try:
        update = UpdateStatusInput(content=content, link_url=link, ttl=ttl)
    except ValueError as e:
        logger.error("invalid_status", error=str(e))
        return 1

    async with feed:
        try:
            await feed.login_with_signer()
            event = await feed.update_my_status(update)
        except SigningError as e:
            logger.error("signing_failed", error=str(e))
            return 1
        except PublishingError as e:
            logger.error("publish_failed", error=str(e))
            return 1
    logger.info("status_posted", event_id=event.id)
    return 0


async def logout(feed: StatusFeed) -> int:
    async with feed:
        await feed.logout()
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the engine, and run the command."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config_dict = _load_yaml_dict(args.config)
        feed = StatusFeed.from_dict(config_dict) if config_dict else StatusFeed()
    except (StatusFeedError, ValueError) as e:
        logger.error("config_invalid", path=str(args.config), error=str(e))
        return 1

    try:
        if args.command == "watch":
            return await watch(feed, args.pubkey, once=args.once)
        if args.command == "post":
            return await post(feed, args.content, args.link, args.ttl)
        return await logout(feed)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

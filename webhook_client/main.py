"""Command line entry point for sending messages to a webhook."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from .client import WebhookClient
from .config import DEFAULT_TIMEOUT, MAX_CONTENT_LENGTH
from .exceptions import DeliveryError, MessageError, WebhookUrlError
from .parsers.webhook_parser import parse_webhook_url


def parse_args(argv: List[str] = None) -> argparse.Namespace:
    """Parses command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Send messages to a webhook, in order, within its rate limit."
    )
    parser.add_argument(
        "webhook_url",
        help="The webhook URL, or an id/token pair.",
    )
    parser.add_argument(
        "messages",
        nargs="*",
        help="Messages to send. If none are given, reads one message per line.",
    )
    parser.add_argument(
        "-i",
        "--input",
        type=str,
        default=None,
        help="Path to a file with one message per line. If not provided, reads from stdin.",
    )
    parser.add_argument(
        "-u",
        "--username",
        type=str,
        default=None,
        help="Post under this name instead of the webhook's default.",
    )
    parser.add_argument(
        "--proxy",
        type=str,
        default=None,
        help="Proxy URL to send through (http://, socks4:// or socks5://).",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Request timeout in seconds. Defaults to {DEFAULT_TIMEOUT}.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output.",
    )
    return parser.parse_args(argv)


def validate_args(args: argparse.Namespace) -> argparse.Namespace:
    """Validate command-line arguments."""

    # Validate timeout
    if args.timeout <= 0:
        logging.error(f"Timeout must be positive, got: {args.timeout}")
        sys.exit(1)
    if args.timeout > 300:
        logging.warning(
            f"Timeout of {args.timeout}s is very high. "
            f"This may cause long wait times."
        )

    # Validate webhook
    try:
        parse_webhook_url(args.webhook_url)
    except WebhookUrlError as e:
        logging.error(str(e))
        sys.exit(1)

    # Validate proxy
    if args.proxy:
        parsed = urlparse(args.proxy)
        if parsed.scheme not in ("http", "socks4", "socks5"):
            logging.error(
                f"Invalid proxy scheme '{parsed.scheme}' in {args.proxy}. "
                f"Only http, socks4 and socks5 are supported."
            )
            sys.exit(1)
        if not parsed.hostname or not parsed.port:
            logging.error(f"Invalid proxy URL: {args.proxy}")
            sys.exit(1)

    # Validate input file
    if args.input:
        if args.messages:
            logging.error("Pass messages as arguments or with --input, not both.")
            sys.exit(1)
        source_path = Path(args.input)
        if not source_path.exists():
            logging.error(f"Input file not found: {args.input}")
            sys.exit(1)
        if not source_path.is_file():
            logging.error(f"Input is not a file: {args.input}")
            sys.exit(1)

    return args


def read_messages(args: argparse.Namespace) -> List[str]:
    """Collect the messages to send, skipping blank lines."""
    if args.messages:
        lines = args.messages
    elif args.input:
        logging.info(f"Reading messages from {args.input}")
        with open(args.input, "r", encoding="utf-8") as f:
            lines = f.readlines()
    else:
        logging.info("Reading messages from stdin")
        lines = sys.stdin.readlines()

    messages: List[str] = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        if len(line) > MAX_CONTENT_LENGTH:
            logging.warning(f"Skipping message longer than {MAX_CONTENT_LENGTH} characters")
            continue
        messages.append(line)
    return messages


async def main(argv: List[str] = None) -> int:
    """Main asynchronous function. Returns the process exit code."""
    args: argparse.Namespace = parse_args(argv)

    # Configure logging
    log_level: int = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    args = validate_args(args)

    messages = read_messages(args)
    if not messages:
        logging.warning("No messages to send. Exiting.")
        return 1

    logging.info(f"Sending {len(messages)} messages.")

    async with WebhookClient(
        args.webhook_url, timeout=args.timeout, proxy=args.proxy
    ) as client:
        futures = []
        for message in messages:
            try:
                futures.append(client.send(message, username=args.username))
            except MessageError as e:
                logging.warning(f"Skipping invalid message: {e}")
        results = await asyncio.gather(*futures, return_exceptions=True)

    delivered = 0
    failed = 0
    for result in results:
        if isinstance(result, DeliveryError):
            logging.error(f"A message could not be delivered: {result}")
            failed += 1
        elif isinstance(result, BaseException):
            logging.error(f"An error occurred during delivery: {result}")
            failed += 1
        else:
            delivered += 1

    logging.info(f"Delivered: {delivered} Failed: {failed}")
    return 1 if failed else 0


def run() -> None:
    """Entry point for the console script."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logging.info("\nInterrupted by user. Exiting.")
    except Exception as e:
        logging.error(f"An unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()

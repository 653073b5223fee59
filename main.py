#!/usr/bin/env python3
"""
RedSalud-Bot - Automated RedSalud appointment booking agent.

Main entry point for the application.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from src.core.config.settings import BotSettings, get_settings
from src.core.enums import BookingStatus
from src.core.exceptions import ConfigurationError
from src.core.logger import setup_structured_logging
from src.models.booking import BookingResult, ContactInfo, Identity, ResumableContext
from src.services.booking.booking_agent import confirm_booking, start_booking


def load_environment(env_file: str = ".env") -> None:
    """Load a .env file into the process environment if it exists."""
    env_path = Path(env_file)
    if env_path.exists():
        load_dotenv(env_path)


def print_result(result: BookingResult) -> None:
    """Print a result as JSON without the screenshot."""
    print(json.dumps(result.to_dict(include_screenshot=False), ensure_ascii=False, indent=2))


def run_web_mode(settings: BotSettings) -> None:
    """
    Serve the HTTP API with uvicorn.

    Args:
        settings: Application settings
    """
    import uvicorn

    from web.app import create_app

    logger = logging.getLogger(__name__)
    logger.info(f"Starting RedSalud-Bot API on {settings.api_host}:{settings.api_port}...")

    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
        log_config=None,  # Keep the loguru intercept handler
    )


async def run_check_mode(args: argparse.Namespace, settings: BotSettings) -> BookingResult:
    """Search availability once."""
    identity = Identity(document_number=args.document, document_type=args.document_type)
    context = ResumableContext(
        service=args.service, specialty=args.specialty, location=args.location
    )
    return await start_booking(identity, context, date=args.date, settings=settings)


async def run_book_mode(args: argparse.Namespace, settings: BotSettings) -> BookingResult:
    """Book one slot."""
    identity = Identity(document_number=args.document, document_type=args.document_type)
    context = ResumableContext(
        service=args.service, specialty=args.specialty, location=args.location
    )
    contact = ContactInfo(phone=args.phone, email=args.email)
    return await confirm_booking(
        context,
        args.date,
        args.time,
        contact,
        identity,
        doctor=args.doctor,
        settings=settings,
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    from src.constants import DEFAULT_DOCUMENT_TYPE, DEFAULT_SERVICE

    parser = argparse.ArgumentParser(description="RedSalud-Bot - Automated appointment booking")
    parser.add_argument(
        "--mode",
        choices=["web", "check", "book"],
        default="web",
        help="Run mode: web (HTTP API, default), check (search once), book (reserve once)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (defaults to LOG_LEVEL)",
    )

    booking = parser.add_argument_group("booking", "Parameters for check and book modes")
    booking.add_argument("--document", help="Patient document number (RUT)")
    booking.add_argument("--document-type", default=DEFAULT_DOCUMENT_TYPE)
    booking.add_argument("--service", default=DEFAULT_SERVICE)
    booking.add_argument("--specialty")
    booking.add_argument("--location")
    booking.add_argument("--date", help="Date label as the portal shows it")
    booking.add_argument("--time", help="Time as HH:MM")
    booking.add_argument("--doctor")
    booking.add_argument("--phone")
    booking.add_argument("--email")
    return parser


def main() -> None:
    """Main entry point."""
    load_environment()
    parser = build_parser()
    args = parser.parse_args()

    try:
        settings = get_settings()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_structured_logging(args.log_level or settings.log_level, json_format=settings.log_json)
    logger = logging.getLogger(__name__)

    if args.mode in ("check", "book"):
        if not args.document or not args.specialty:
            parser.error("--document and --specialty are required for check and book modes")
        if args.mode == "book" and not args.time:
            parser.error("--time is required for book mode")

    try:
        if args.mode == "web":
            run_web_mode(settings)
            return

        runner = run_check_mode if args.mode == "check" else run_book_mode
        result = asyncio.run(runner(args, settings))
        print_result(result)
        sys.exit(2 if result.status == BookingStatus.ERROR else 0)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Stopped by user")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Check the IG session and streaming setup

This script tests the IG connection by:
1. Loading credentials from the environment (.env supported)
2. Logging in and listing accounts
3. Refreshing the access token
4. Optionally opening a Lightstreamer connection and printing updates

Usage:
    python scripts/check_ig_session.py [EPIC] [SECONDS]
"""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dotenv import load_dotenv
from loguru import logger

from igstream import IGClient, IGClientError, IGConfig
from igstream.infrastructure.brokers.ig import (
    ConnectionCallbacks,
    SubscriptionCallbacks,
)


class Colors:
    """ANSI color codes for terminal output"""

    GREEN = "\033[92m"
    RED = "\033[91m"
    BLUE = "\033[94m"
    RESET = "\033[0m"


def print_status(success: bool, message: str) -> None:
    """Print status message with color"""
    if success:
        print(f"{Colors.GREEN}✓{Colors.RESET} {message}")
    else:
        print(f"{Colors.RED}✗{Colors.RESET} {message}")


def print_info(message: str) -> None:
    """Print info message"""
    print(f"{Colors.BLUE}ℹ{Colors.RESET}  {message}")


async def check_session(epic: str | None, seconds: int) -> bool:
    """Log in, refresh and optionally stream one market

    Returns:
        True if every step succeeded, False otherwise
    """
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    print(f"\n{Colors.BLUE}=== IG Session Check ==={Colors.RESET}")
    print(f"{Colors.BLUE}Timestamp: {timestamp}{Colors.RESET}\n")

    try:
        config = IGConfig.from_env()
    except ValueError as e:
        print_status(False, str(e))
        return False
    print_status(True, "Credentials configured")

    async with IGClient.from_config(config) as client:
        try:
            session = await client.login()
            print_status(True, f"Logged in to account {session.account_id}")

            response = await client.get("/accounts")
            accounts = response.json().get("accounts", [])
            print_status(response.is_success, f"{len(accounts)} account(s)")

            await client.refresh()
            print_status(True, f"Token refreshed ({client.auth_remaining()} ms left)")
        except IGClientError as e:
            print_status(False, f"Session check failed: {e}")
            return False

        if not epic:
            return True

        streamer = await client.streamer(
            ConnectionCallbacks(
                status_change=lambda status: print_info(f"Status: {status}"),
                server_error=lambda code, msg: print_status(
                    False, f"Server error {code}: {msg}"
                ),
            )
        )
        client.stream(
            streamer,
            "MERGE",
            [f"MARKET:{epic}"],
            ["BID", "OFFER", "UPDATE_TIME"],
            SubscriptionCallbacks(
                item_update=lambda name, data, _: print_info(f"{name} {data}")
            ),
        )
        await asyncio.sleep(seconds)
        streamer.disconnect()
        print_status(True, "Streaming check finished")

    return True


def main() -> int:
    load_dotenv(Path(__file__).parent.parent / ".env")
    logger.remove()
    logger.add(sys.stderr, level="WARNING")

    epic = sys.argv[1] if len(sys.argv) > 1 else None
    seconds = int(sys.argv[2]) if len(sys.argv) > 2 else 10
    return 0 if asyncio.run(check_session(epic, seconds)) else 1


if __name__ == "__main__":
    sys.exit(main())

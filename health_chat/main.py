"""Console entry point.

Sends each typed line to the assistant and prints the reply as it streams.
Environment variables are loaded from .env file.

Commands:
    /new             start a new conversation
    /analyze <path>  upload a medical report image for analysis
    /quit            exit
"""

import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


class ConsolePrinter:
    """Prints the growth of the last assistant turn after each change."""

    def __init__(self) -> None:
        self._printed = ""

    def reset(self) -> None:
        self._printed = ""

    def __call__(self, snapshot: tuple) -> None:
        if not snapshot or snapshot[-1].role != "assistant":
            return
        turn = snapshot[-1]
        if turn.content.startswith(self._printed):
            print(turn.content[len(self._printed):], end="", flush=True)
        else:
            # Error substitution replaced the partial reply
            print()
            print(turn.content, end="", flush=True)
        self._printed = turn.content
        if not turn.is_open:
            print()
            self._printed = ""


async def run_console() -> None:
    """Read lines from stdin until /quit or end of input."""
    from health_chat.analysis import DocumentAnalysisError, analyze_file
    from health_chat.chat import ChatSession
    from health_chat.config import get_client_config

    config = get_client_config()
    printer = ConsolePrinter()
    logger.info(f"Connecting to {config.api_base_url}")

    async with ChatSession(config=config, on_change=printer) as session:
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break

            command = line.strip()
            if command == "/quit":
                break
            if command == "/new":
                session.new_chat()
                printer.reset()
                print(f"New chat {session.session_id[:8].upper()}")
                continue
            if command.startswith("/analyze"):
                path = command.removeprefix("/analyze").strip()
                if not path:
                    print("Usage: /analyze <path>")
                    continue
                try:
                    result = await analyze_file(path, config=config)
                except DocumentAnalysisError as e:
                    print(e)
                    continue
                print(result.analysis)
                for condition in result.conditions:
                    print(f"- {condition}")
                print(result.recommendations)
                continue

            await session.send_message(command)


def main() -> None:
    """Application entry point."""
    try:
        asyncio.run(run_console())
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")


if __name__ == "__main__":
    main()

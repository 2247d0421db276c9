"""VoiceFeed command line.

Loads a conversation from a JSON message file, optionally appends a new transcription, translates the
feed into the selected target language and prints it.

API keys are read from the environment; a ``.env`` file in the working directory is loaded first.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn

from dotenv import find_dotenv, load_dotenv

from config.loader import Config, ConfigLoader, ConfigLoaderError
from core.app import VoiceFeed
from core.feed.store import JsonFileMessageStore, MessageStoreError
from core.trans.engines.const_languages import language_name
from core.version import VERSION
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.feed.message_feed import FeedRow

CFG_FILE: Final[str] = "voicefeed.ini"
MESSAGES_FILE: Final[str] = "voicefeed.json"
TIMESTAMP_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


def check_python_version() -> None:
    """Check if Python version is 3.12 or later.

    Raises:
        RuntimeError: If Python version is below 3.12.
    """
    if sys.version_info < (3, 12):
        msg = "Python 3.12 or later is required"
        raise RuntimeError(msg)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments.
    """
    parser = _ArgumentParser(
        description="Show a multilingual voice-message feed in one language",
        epilog='Example: python voicefeed.py --target ha --say Amina "Hello everyone" en',
    )
    parser.add_argument("--config", dest="config", metavar="INI_FILE", default=CFG_FILE, help="Configuration file")
    parser.add_argument("--messages", dest="messages", metavar="JSON_FILE", help="Message file (overrides [STORE] PATH)")
    parser.add_argument("--target", dest="target", metavar="LANG", help="Target language (overrides the default)")
    parser.add_argument("--debug", dest="debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--say",
        dest="say",
        nargs=3,
        metavar=("NAME", "TEXT", "LANG"),
        help="Append a transcription before showing the feed",
    )
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Load the configuration file and apply CLI overrides.

    Raises:
        ConfigLoaderError: If the configuration file cannot be loaded.
    """
    script_name: str = Path(sys.argv[0]).stem
    config: Config = ConfigLoader(config_filename=args.config, script_name=script_name, **vars(args)).config
    config.GENERAL.VERSION = VERSION
    return config


def setup_logging(config: Config) -> logging.Logger:
    log_file: str = str(FileUtils.resolve_path(config.GENERAL.LOG_FILE)) if config.GENERAL.LOG_FILE else ""
    logger_utils = LoggerUtils(log_file)
    logger_utils.set_level("DEBUG" if config.GENERAL.DEBUG else "INFO")
    return LoggerUtils.get_logger(__name__)


def format_row(row: FeedRow) -> str:
    message = row.message
    line: str = (
        f"{message.display_sender}  {message.created_at.strftime(TIMESTAMP_FORMAT)}  [{message.language}]  {row.display_text}"
    )
    if row.is_translated and message.translated_lang:
        line += f"  (Translated to {language_name(message.translated_lang)})"
    return line


async def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Performs the following steps:
    1. Load ``.env`` and the configuration
    2. Open the message file and start the feed
    3. Append the ``--say`` transcription, if any
    4. Run one refresh pass and print the feed

    Returns:
        int: Process exit status.
    """
    check_python_version()
    load_dotenv(find_dotenv(usecwd=True))

    args: argparse.Namespace = parse_arguments(argv)
    try:
        config: Config = load_config(args)
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        return 1

    logger: logging.Logger = setup_logging(config)
    logger.info("%s %s started", config.GENERAL.SCRIPT_NAME, config.GENERAL.VERSION)

    messages_path: str = args.messages or config.STORE.PATH or MESSAGES_FILE
    try:
        store = JsonFileMessageStore(messages_path)
    except MessageStoreError as err:
        print(f"\nError: {err}", file=sys.stderr)
        return 1

    app = VoiceFeed(config, store)
    try:
        await app.start()
        if args.say:
            name, text, lang = args.say
            if await app.submit_transcription(name, text, lang) is None:
                print("\nError: the transcription was not saved (see the log for details).", file=sys.stderr)
        await app.refresh()

        print(f"Feed ({language_name(app.target_language)}), {len(app.messages)} messages")
        print("-" * 50)
        for row in app.render():
            print(format_row(row))
    finally:
        await app.close()
    return 0


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\nCancelled by user.", file=sys.stderr)
    except (OSError, RuntimeError, ValueError) as err:
        print(f"\nFatal error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()

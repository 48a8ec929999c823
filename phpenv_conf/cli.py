#!/usr/bin/env python

# Copyright 2024 daohu527 <daohu527@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from phpenv_conf import __version__
from phpenv_conf.config import (
    COMMANDS,
    ConfigManager,
    ConfigError,
    ConfigNotFoundError,
    ConfigPermissionError,
    InvalidFilePathError,
)
from phpenv_conf.confs_lock import LockError
from phpenv_conf.settings import SettingsError, SystemVersionError, load_settings

HELP_WORDS = ("--help", "-h", "help")

# alias -> canonical command name
COMMAND_ALIASES = {
    "add": "add",
    "rm": "rm",
    "remove": "rm",
    "enable": "enable",
    "en": "enable",
    "disable": "disable",
    "dis": "disable",
    "ls": "ls",
    "list": "ls",
    "version": "version",
}


class UsageError(Exception):
    """Raised instead of exiting when the command line cannot be parsed."""
    pass


class CliParser(argparse.ArgumentParser):
    """Argument parser that reports errors as UsageError rather than exiting with status 2."""

    def error(self, message):
        raise UsageError(message)


# ==============================================================================
# Command Handlers
# ==============================================================================


def handle_add(manager: ConfigManager, args: argparse.Namespace):
    """Handle 'add' command"""
    name = manager.add_config(args.file_path)
    print(f"Config '{name}' added.")


def handle_remove(manager: ConfigManager, args: argparse.Namespace):
    """Handle 'rm' command"""
    manager.remove_config(args.name)
    print(f"Config '{args.name}' removed.")


def handle_enable(manager: ConfigManager, args: argparse.Namespace):
    """Handle 'enable' command"""
    if manager.enable_config(args.name):
        print(f"Config '{args.name}' enabled.")
    else:
        print(f"Config '{args.name}' is already enabled.")


def handle_disable(manager: ConfigManager, args: argparse.Namespace):
    """Handle 'disable' command"""
    manager.disable_config(args.name)
    print(f"Config '{args.name}' disabled.")


def handle_list(manager: ConfigManager, args: argparse.Namespace):
    """Handle 'ls' command"""
    manager.list_configs()


COMMAND_HANDLERS: Dict[str, Callable[[ConfigManager, argparse.Namespace], None]] = {
    "add": handle_add,
    "rm": handle_remove,
    "enable": handle_enable,
    "disable": handle_disable,
    "ls": handle_list,
}

# ==============================================================================
# Main Application
# ==============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the command-line argument parser"""
    parser = CliParser(
        prog="phpenv-conf",
        description="phpenv-conf: enable and disable PHP ini fragments of the selected phpenv version",
        formatter_class=argparse.RawTextHelpFormatter,
        add_help=False,
    )

    # Global arguments
    parser.add_argument(
        "--root", type=str, default=None,
        help="phpenv root directory, default is $PHPENV_ROOT or ~/.phpenv"
    )
    parser.add_argument(
        "--php-version", type=str, default=None,
        help="PHP version to manage, default is $PHPENV_VERSION or <root>/version"
    )
    parser.add_argument(
        "--settings", type=str, default=None,
        help="YAML settings file, default is $PHPENV_CONF_SETTINGS or <root>/phpenv-conf.yaml"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable verbose debug output"
    )
    parser.add_argument(
        "--complete", nargs="?", const="", default=None, metavar="CONTEXT",
        help="Print shell completion candidates for the word after CONTEXT"
    )

    subparsers = parser.add_subparsers(
        dest='command', required=False, help='Available commands'
    )

    # 1. add
    parser_add = subparsers.add_parser(
        "add", help="Copy an .ini file into conf.d-available")
    parser_add.add_argument("file_path", nargs="?", help="Path to the .ini file")
    # 2. rm
    parser_rm = subparsers.add_parser(
        "rm", aliases=["remove"], help="Remove a config (disabling it first)")
    parser_rm.add_argument("name", nargs="?", help="Config name")
    # 3. enable
    parser_enable = subparsers.add_parser(
        "enable", aliases=["en"], help="Link a config into conf.d")
    parser_enable.add_argument("name", nargs="?", help="Config name")
    # 4. disable
    parser_disable = subparsers.add_parser(
        "disable", aliases=["dis"], help="Remove a config's link from conf.d")
    parser_disable.add_argument("name", nargs="?", help="Config name")
    # 5. ls
    subparsers.add_parser(
        "ls", aliases=["list"], help="List enabled and available configs")
    # 6. version
    subparsers.add_parser("version", help="Print the version")

    return parser


def print_completions(args: argparse.Namespace):
    """Print one completion candidate per line for the given context."""
    context = args.complete or None
    if COMMAND_ALIASES.get(context) not in ("rm", "enable", "disable"):
        print("\n".join(COMMANDS))
        return
    try:
        settings = load_settings(args.root, args.php_version, args.settings)
        candidates = ConfigManager(settings).completion_candidates(context)
    except (ConfigError, SettingsError, OSError) as e:
        logging.debug(f"No completion candidates: {e}")
        return
    if candidates:
        print("\n".join(candidates))


def main(argv: Optional[List[str]] = None):
    """Main execution function"""
    argv = sys.argv[1:] if argv is None else list(argv)
    parser = create_parser()

    if any(arg in HELP_WORDS for arg in argv):
        parser.print_help()
        return

    try:
        args = parser.parse_args(argv)
    except UsageError:
        parser.print_help()
        return

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level, format='%(levelname)s: %(message)s', stream=sys.stdout)

    if args.complete is not None:
        print_completions(args)
        return

    command = COMMAND_ALIASES.get(args.command)
    if command is None:
        parser.print_help()
        return
    if command == "version":
        print(f"phpenv-conf {__version__}")
        return

    try:
        settings = load_settings(args.root, args.php_version, args.settings)
        conf_manager = ConfigManager(settings)
        COMMAND_HANDLERS[command](conf_manager, args)

    # Precise, user-facing exception handling
    except ConfigNotFoundError as e:
        logging.error(e)
    except InvalidFilePathError as e:
        logging.error(e)
        sys.exit(1)
    except SystemVersionError as e:
        logging.error(e)
        sys.exit(1)
    except SettingsError as e:
        logging.error(f"Invalid settings: {e}")
        sys.exit(1)
    except ConfigPermissionError as e:
        logging.error(
            f"Operation failed: Permission denied. Please check file/directory permissions. Details: {e}")
        sys.exit(1)
    except LockError as e:
        logging.error(f"Operation failed: {e}")
        sys.exit(1)
    except ConfigError as e:
        logging.error(f"Error occurred: {e}")
        sys.exit(1)
    except Exception as e:
        logging.error("An unexpected critical error occurred.")
        if args.verbose:
            logging.exception(e)
        else:
            logging.error(f"Details: {e}")
        sys.exit(127)


if __name__ == "__main__":
    main()

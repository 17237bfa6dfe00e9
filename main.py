#!/usr/bin/env python3
"""
discocleaner: interactive normalizer for an Artist/Album/Song music library.

Walks the library, checks song filenames, album directory names, ID3 tags
and cover artwork against the configured rules, and asks before changing
anything on disk.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional

# Enable UTF-8 mode for universal file compatibility
if not os.environ.get('PYTHONUTF8'):
    os.environ['PYTHONUTF8'] = '1'

from models.schemas import RepairPolicy
from pipeline.context import CleanerContext
from pipeline.orchestrator import LibraryCleaner
from utils.config_loader import DEFAULT_CONFIG_FILE, ensure_config_file, load_config
from utils.exceptions import ConfigurationError, DiscoCleanerError
from utils.logging_config import RunLog, configure_library_logging, setup_logging
from utils.terminal import Terminal

__version__ = "1.0.0"


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments; unknown options abort with a usage message."""
    parser = argparse.ArgumentParser(
        prog="discocleaner",
        description="Clean an Artist/Album/Song music library interactively",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                   # Clean the whole library
  %(prog)s --artist="Pink Floyd"             # Proceed with the given artist only
  %(prog)s --album="Abbey Road"              # Proceed with the given album only
        """
    )

    parser.add_argument(
        "--artist",
        metavar="<artist directory name>",
        help="Proceed with the given artist only"
    )

    parser.add_argument(
        "--album",
        metavar="<album directory name>",
        help="Proceed with the given album only"
    )

    parser.add_argument(
        "--config",
        type=Path,
        help=f"Path to config file (default: ./{DEFAULT_CONFIG_FILE}, created if missing)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show program's version"
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    run_log = None
    launcher = None

    try:
        config_path = args.config or Path.cwd() / DEFAULT_CONFIG_FILE
        if ensure_config_file(config_path):
            print(f"Created default configuration: {config_path}")
        config = load_config(config_path)

        logging_config = config['logging']
        log_level = "DEBUG" if args.verbose else logging_config['level']
        log_file = Path(logging_config['file']).expanduser() if logging_config.get('file') else None
        logger = setup_logging(log_level, log_file, console_output=args.verbose)
        configure_library_logging()

        policy = RepairPolicy.from_config(config, artist=args.artist, album=args.album)

        if logging_config.get('run_log_enabled'):
            run_log = RunLog(Path(logging_config['run_log_file']).expanduser())

        terminal = Terminal(run_log=run_log)
        context = CleanerContext.build(config, policy, terminal)
        launcher = context.launcher

        music_dir = Path(config['library']['path']).expanduser()
        logger.info(f"Starting discocleaner {__version__}")
        logger.info(f"Music directory: {music_dir}")
        logger.info(f"Auto-confirm: {policy.force}")

        stats = LibraryCleaner(context).clean_library(music_dir)

        terminal.info(
            f"Albums processed: {stats['albums_processed']}, "
            f"with errors: {stats['albums_with_errors']}, "
            f"failed: {stats['albums_failed']}, empty: {stats['albums_empty']}"
        )

        if run_log is not None:
            log_path = run_log.write()
            run_log = None
            if logging_config.get('show_run_log'):
                launcher.open_in_editor(log_path)

        return 0

    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 1
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except DiscoCleanerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if run_log is not None:
            run_log.close()


if __name__ == "__main__":
    sys.exit(main())

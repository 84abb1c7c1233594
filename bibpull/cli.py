"""
Command-line interface for bibpull.
"""

from pathlib import Path
import argparse
import logging
import sys

from . import __version__
from .config import Settings, load_config
from .errors import ConfigError
from .inputs import resolve_arguments
from .logging_config import setup_logging
from .network import create_session
from .puller import Puller
from .report import format_json, format_text, summary_line
from .retry import RetryPolicy
from .scheduler import Scheduler
from .storage import AttachmentStore
from .translators import default_registry

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


def _load_settings(args) -> Settings:
    """Merge config files and command-line overrides.

    Raises:
        ConfigError: Invalid configuration
    """
    config = load_config(args.config)
    if args.workers is not None:
        config['max_workers'] = args.workers
    if args.max_retries is not None:
        config['max_retries'] = args.max_retries
    if getattr(args, 'output', None):
        config['output_dir'] = args.output
    return Settings.from_mapping(config)


def _emit(args, fetches, downloads=()) -> None:
    if args.format == 'json':
        print(format_json(fetches, downloads))
    else:
        text = format_text(fetches, downloads)
        if text:
            print(text)
        if not args.quiet:
            print(summary_line(fetches, downloads), file=sys.stderr)


def _run(args, pull: bool) -> int:
    try:
        settings = _load_settings(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    inputs = resolve_arguments(args.inputs)
    logger.info(f"Resolving {len(inputs)} input(s) with {settings.max_workers} worker(s)")

    session = create_session(settings.user_agent)
    registry = default_registry(settings, session=session)
    policy = RetryPolicy.from_settings(settings)
    scheduler = Scheduler(
        max_workers=settings.max_workers,
        show_progress=not args.quiet and sys.stderr.isatty(),
    )

    fetches = scheduler.fetch_all(inputs, registry, policy=policy)

    downloads = []
    if pull and not scheduler.cancelled:
        try:
            store = AttachmentStore(settings.output_dir)
        except (ValueError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE
        puller = Puller(store, session=session, timeout=settings.timeout,
                        policy=policy, cancel_event=scheduler.cancel_event)
        downloads = scheduler.run(puller.plan(fetches), desc="Downloading")

    _emit(args, fetches, downloads)

    if scheduler.cancelled:
        return EXIT_INTERRUPTED
    if all(f.succeeded for f in fetches) and all(d.succeeded for d in downloads):
        return EXIT_OK
    return EXIT_FAILURES


def cmd_fetch(args) -> int:
    """Resolve inputs and print their metadata."""
    return _run(args, pull=False)


def cmd_pull(args) -> int:
    """Resolve inputs and download their attachments."""
    return _run(args, pull=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='bibpull',
        description='Resolve DOIs, arXiv IDs, ISBNs, URLs and bibliography files into '
                    'bibliographic metadata, and download their attachments',
    )
    parser.add_argument(
        '--version',
        action='version',
        version=f'bibpull {__version__}'
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        'inputs',
        nargs='+',
        help='DOI, arXiv ID, ISBN, URL, or BibTeX/Hayagriva file'
    )
    common.add_argument(
        '-c', '--config',
        type=str,
        help='Path to config file (default: ./bibpull.yaml if present)'
    )
    common.add_argument(
        '-w', '--workers',
        type=int,
        help='Number of parallel workers (default: 4)'
    )
    common.add_argument(
        '-r', '--max-retries',
        type=int,
        help='Attempts per input before giving up on transient errors (default: 3)'
    )
    common.add_argument(
        '--format',
        choices=['text', 'json'],
        default='text',
        help='Output format (default: text)'
    )
    common.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )
    common.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Only show errors on stderr'
    )
    common.add_argument(
        '--log-file',
        type=Path,
        help='Also write a DEBUG log to this file'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    fetch_parser = subparsers.add_parser(
        'fetch',
        parents=[common],
        help='Fetch bibliographic metadata',
        epilog='Examples:\n'
               '  bibpull fetch 10.1000/abc\n'
               '  bibpull fetch arXiv:2301.12345 978-0-262-03384-8\n'
               '  bibpull fetch refs.bib --format json\n',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    fetch_parser.set_defaults(func=cmd_fetch)

    pull_parser = subparsers.add_parser(
        'pull',
        parents=[common],
        help='Fetch metadata and download attachments',
        epilog='Examples:\n'
               '  bibpull pull 2301.12345 -o ./papers\n'
               '  bibpull pull refs.bib -w 8\n',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    pull_parser.add_argument(
        '-o', '--output',
        type=str,
        help='Output directory for attachments (default: ./attachments)'
    )
    pull_parser.set_defaults(func=cmd_pull)

    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, 'func'):
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == '__main__':
    sys.exit(main())

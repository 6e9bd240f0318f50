"""wtmp-last: list past and current logins reconstructed from wtmp files."""

import glob
import logging
import os
import sys
from argparse import ArgumentParser
from datetime import timezone

from wtmp_sessions.config import OUTPUT_FORMATS, Config, load_config, load_yaml_config
from wtmp_sessions.formatter import format_footer, get_formatter
from wtmp_sessions.sessions import ALGORITHMS, get_reconstructor
from wtmp_sessions.wtmp import WtmpParseError, read_records

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser.

    Every option defaults to None so that env vars and the YAML file can
    fill in anything not given on the command line.
    """
    parser = ArgumentParser(
        prog="wtmp-last",
        description="Show login sessions reconstructed from wtmp accounting logs.",
    )
    parser.add_argument(
        "-f", "--file",
        dest="files",
        action="append",
        help="wtmp file path or glob pattern; repeat for several files (default: /var/log/wtmp)",
    )
    parser.add_argument(
        "-n", "--limit",
        type=int,
        help="Show only the N most recent sessions per file",
    )
    parser.add_argument(
        "--output",
        choices=OUTPUT_FORMATS,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--utc",
        action="store_true",
        default=None,
        help="Show times in UTC instead of local time",
    )
    parser.add_argument(
        "--algorithm",
        choices=ALGORITHMS,
        help="Matching algorithm: per-login scan or linear sweep (default: sweep)",
    )
    parser.add_argument(
        "--split-shutdown",
        action="store_true",
        default=None,
        help="Decode shutdown runlevel records as dedicated shutdown records",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML config file",
    )
    parser.add_argument(
        "--log-level",
        help="Diagnostic log level on stderr (default: WARNING)",
    )
    return parser


def expand_paths(raw_paths: list[str]) -> list[str]:
    """Expand globs, deduplicate, and validate that files exist.

    Raises FileNotFoundError if a non-glob path doesn't exist or if
    expansion produces zero files.
    """
    expanded = []
    seen = set()

    for raw in raw_paths:
        if any(c in raw for c in ("*", "?", "[")):
            candidates = sorted(glob.glob(raw))
        else:
            if not os.path.isfile(raw):
                raise FileNotFoundError(f"File not found: {raw}")
            candidates = [raw]
        for path in candidates:
            if path not in seen:
                seen.add(path)
                expanded.append(path)

    if not expanded:
        raise FileNotFoundError("No wtmp files found matching the given paths")

    return expanded


def run(config: Config) -> int:
    """Print the sessions of every configured file. Returns the exit status."""
    tz = timezone.utc if config.utc else None
    formatter = get_formatter(config.output, tz)
    resolve = get_reconstructor(config.algorithm)

    paths = expand_paths(config.files)
    failed = 0

    for path in paths:
        try:
            records = read_records(path, split_shutdown=config.split_shutdown)
        except (WtmpParseError, OSError) as exc:
            logger.error("Skipping %s: %s", path, exc)
            failed += 1
            continue

        sessions = resolve(records)
        if config.limit is not None:
            sessions = sessions[:config.limit]

        for enter in sessions:
            print(formatter(enter))

        if config.output == "text":
            first_time = records[0].time if records else None
            print(format_footer(path, first_time, tz))

    if failed:
        logger.warning("%d of %d file(s) could not be read", failed, len(paths))
        return 1
    return 0


def main(argv=None) -> int:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args, load_yaml_config(args.config))
        logging.getLogger().setLevel(config.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    logger.debug("Config: files=%s, limit=%s, output=%s, algorithm=%s",
                 config.files, config.limit, config.output, config.algorithm)

    try:
        return run(config)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def cli():
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except BrokenPipeError:
        sys.exit(0)


if __name__ == "__main__":
    cli()

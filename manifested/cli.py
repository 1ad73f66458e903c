"""Command-line interface for manifested."""

import argparse
import logging
import sys
from collections import Counter
from pathlib import Path

from .config import HASH_ALGORITHMS, Settings, load_settings
from .errors import ManifestedError
from .models import ManifestDiff, ManifestState
from .scanner import generate_manifest
from .sync import compare, deploy, repair, update, verify

MODE_HELP = {
    "generate": "Generate a manifest for a given target directory.",
    "verify": "Verify file integrity of a directory according to its manifest.",
    "compare": "Compare two manifested directories.",
    "update": "Update target directory to match source directory's manifest.",
    "repair": "Update the target, verify it, and pull again any file that fails.",
    "deploy": "Copy the manifest and all tracked files from the source to the target.",
}
# Names accepted for compatibility with older scripts.
MODE_ALIASES = {"apply": "update"}
TARGET_ONLY_MODES = ("generate", "verify")
# Modes that may create the target directory.
CREATES_TARGET_MODES = ("repair", "deploy")


def _modes_epilog() -> str:
    width = max(len(mode) for mode in MODE_HELP)
    lines = ["Operation modes:"]
    lines += [f"  {mode:>{width}}: {text}" for mode, text in MODE_HELP.items()]
    return "\n".join(lines)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Track directory trees with (path, size, checksum) manifests.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_modes_epilog() + """

Examples:
  %(prog)s generate -t /path/to/folder
  %(prog)s verify -t /path/to/folder
  %(prog)s update -s /path/to/source -t /path/to/copy
  %(prog)s -m apply -s /path/to/source -t /path/to/copy
        """
    )

    mode_choices = list(MODE_HELP) + list(MODE_ALIASES)
    parser.add_argument("mode", nargs="?", choices=mode_choices, help="Operation to perform")
    parser.add_argument("-m", "--mode", dest="mode_option", choices=mode_choices, metavar="MODE",
                        help="Operation to perform, as an option")
    parser.add_argument("-s", "--source", type=Path, help="Source directory for the operation")
    parser.add_argument("-t", "--target", type=Path, help="Target directory of the operation")

    parser.add_argument(
        "--hash",
        choices=HASH_ALGORITHMS,
        default=None,
        help="Checksum algorithm (default: sha256)"
    )

    parser.add_argument(
        "--manifest-name",
        default=None,
        help="Manifest file name at the directory root (default: .manifest)"
    )

    parser.add_argument(
        "--progress",
        action="store_true",
        default=None,
        help="Show progress bars"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log applied operations (-v) or debug details (-vv)"
    )

    args = parser.parse_args()

    modes = {MODE_ALIASES.get(mode, mode) for mode in (args.mode, args.mode_option) if mode is not None}
    if not modes:
        parser.error("an operation mode is required")
    if len(modes) > 1:
        parser.error(f"conflicting operation modes: {args.mode} and {args.mode_option}")

    args.mode = modes.pop()
    return args


def validate_args(args: argparse.Namespace) -> None:
    """Validate command-line arguments."""
    if args.mode in TARGET_ONLY_MODES:
        if args.target is None:
            print(f"Error: Target directory must be specified for operation mode {args.mode}")
            sys.exit(1)
    elif args.source is None or args.target is None:
        print(f"Error: Source and target directories must both be specified for operation mode {args.mode}")
        sys.exit(1)

    if args.source is not None and not args.source.is_dir():
        print(f"Error: Source directory does not exist: {args.source}")
        sys.exit(1)
    if args.mode not in CREATES_TARGET_MODES and not args.target.is_dir():
        print(f"Error: Target directory does not exist: {args.target}")
        sys.exit(1)


def configure_logging(verbosity: int) -> None:
    """Send engine log records to stderr at a level chosen by -v flags."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)


def print_diff(diff: list[ManifestDiff], ok_message: str) -> int:
    """Print every non-unchanged record; returns how many were printed."""
    changes = [record for record in diff if record.state is not ManifestState.UNCHANGED]

    for record in changes:
        print(record.describe())

    if not changes:
        print(ok_message)
    return len(changes)


def summarize(diff: list[ManifestDiff]) -> str:
    """One-line count of records per state, in state declaration order."""
    counts = Counter(record.state for record in diff)
    return ", ".join(f"{counts[state]} {state}" for state in ManifestState if counts[state])


def run(args: argparse.Namespace, settings: Settings) -> None:
    """Dispatch the selected operation mode and print its result."""
    if args.mode == "generate":
        entries = generate_manifest(args.target, settings)
        print(f"Wrote {settings.manifest_name} with {len(entries)} entries to {args.target}")
        return

    if args.mode == "verify":
        diff = verify(args.target, settings)
    elif args.mode == "compare":
        diff = compare(args.source, args.target, settings)
    elif args.mode == "update":
        diff = update(args.source, args.target, settings)
    elif args.mode == "repair":
        diff = repair(args.source, args.target, settings)
    else:
        diff = deploy(args.source, args.target, settings)

    ok_message = "integrity OK" if args.mode in ("verify", "repair") else "no changes"
    if print_diff(diff, ok_message):
        print(f"--- {summarize(diff)} ---")


def main() -> None:
    """Main entry point."""
    args = parse_args()
    validate_args(args)
    configure_logging(args.verbose)

    try:
        settings = load_settings(
            manifest_name=args.manifest_name,
            algorithm=args.hash,
            progress=args.progress,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        run(args, settings)
    except KeyboardInterrupt:
        print("\n\nInterrupted! The target may be partially updated.")
        print("Run the same command again, or use repair, to finish.")
        sys.exit(1)
    except (ManifestedError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

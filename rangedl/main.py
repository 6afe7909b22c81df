import sys
import logging
import argparse
from pathlib import Path

import colorama
from colorama import Fore, Style

from rangedl.bootstrap import create_container
from rangedl.app.commands import StartTransfer, ShowConfig, SetConfig
from rangedl.core.errors import ChecksumMismatch, ConfigurationError
from rangedl.interface.progress import format_size

EXIT_OK = 0
EXIT_CHECKSUM = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rangedl", description="Segmented range-request downloader")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    get_parser = subparsers.add_parser("get", help="Download the resource")
    get_parser.add_argument("-H", "--host", help="Server hostname or IP address")
    get_parser.add_argument("-p", "--port", type=int, help="Server port")
    get_parser.add_argument("-c", "--chunk-size", type=int, help="Chunk size in KiB")
    get_parser.add_argument("-t", "--threads", type=int, help="Number of concurrent downloads")
    get_parser.add_argument("-o", "--output", help="Save downloaded data to FILE")
    get_parser.add_argument("-v", "--verify", metavar="HASH", help="Verify SHA-256 hash of downloaded data")
    get_parser.add_argument("--verbose", action="store_true", help="Detailed logging and error messages")
    get_parser.add_argument("-q", "--quiet", action="store_true", help="No progress line")

    config_parser = subparsers.add_parser("config", help="Show or change saved settings")
    config_parser.add_argument("key", help="Config key (host, port, chunk_size, ...)", nargs='?')
    config_parser.add_argument("value", help="Value to set", nargs='?')
    config_parser.add_argument("--unset", action="store_true", help="Remove the saved value for KEY")
    return parser


def run_get(args, container) -> int:
    bus = container["bus"]
    command = StartTransfer(
        host=args.host,
        port=args.port,
        chunk_size=args.chunk_size * 1024 if args.chunk_size is not None else None,
        concurrency=args.threads,
        expected_checksum=args.verify,
        show_progress=not args.quiet,
    )
    outcome = bus.handle(command)

    print(f"\nDownload completed in {outcome.elapsed_seconds:.2f}s")
    print(f"Total size: {outcome.total_bytes} bytes ({format_size(outcome.total_bytes)})")
    print(f"Average speed: {outcome.average_speed / 1024:.2f} KiB/s")
    print(f"SHA-256 hash: {outcome.digest_hex}")

    # Output is kept even when verification fails
    if args.output:
        print(f"Saving downloaded data to '{args.output}'")
        container["file_writer"].write(Path(args.output), outcome.assembled_bytes)
        print("File saved successfully")

    if outcome.errors:
        print(f"\n{Fore.YELLOW}{len(outcome.errors)} errors occurred during download{Style.RESET_ALL}", file=sys.stderr)
        if args.verbose:
            for err in outcome.errors:
                print(f"Chunk {err.chunk_id}: {err.message}", file=sys.stderr)
        else:
            print("Use --verbose for detailed error information", file=sys.stderr)

    try:
        outcome.raise_for_checksum()
    except ChecksumMismatch as e:
        print(f"{Fore.RED}Checksum verification: FAILED{Style.RESET_ALL}", file=sys.stderr)
        print(f"Expected: {e.expected}", file=sys.stderr)
        print(f"Actual:   {e.actual}", file=sys.stderr)
        return EXIT_CHECKSUM

    if outcome.checksum_matched:
        print(f"{Fore.GREEN}Checksum verification: PASSED{Style.RESET_ALL}")
    return EXIT_OK


def run_config(args, container) -> int:
    bus = container["bus"]
    if args.unset:
        if not args.key:
            print("--unset needs a KEY", file=sys.stderr)
            return EXIT_CONFIG
        bus.handle(SetConfig(key=args.key, value=None))
        print(f"{args.key} reset to default")
    elif args.key and args.value is not None:
        saved = bus.handle(SetConfig(key=args.key, value=args.value))
        print(f"{args.key} = {saved}")
    else:
        for key, value in bus.handle(ShowConfig(key=args.key)).items():
            print(f"{key:<18} {value}")
    return EXIT_OK


def main(argv=None, container=None) -> int:
    colorama.just_fix_windows_console()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_CONFIG

    configure_logging(getattr(args, "verbose", False))
    container = container or create_container()

    try:
        if args.command == "get":
            return run_get(args, container)
        return run_config(args, container)
    except ConfigurationError as e:
        print(f"{Fore.RED}Configuration error: {e}{Style.RESET_ALL}", file=sys.stderr)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        print("\nStopping download and exiting...", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())

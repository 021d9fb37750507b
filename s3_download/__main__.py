"""Command-line entry point for the S3 downloader."""
import argparse
import logging
import sys
from typing import Optional

from .controller import S3DownloadController
from .profiles import ConnectionProfile
from .services import BucketNotFoundError, ConfigurationError, TransferError

LOGGER = logging.getLogger("s3_download")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3-download",
        description="Recursively download objects from an S3 bucket to a local path",
        epilog="Example: s3-download download --bucket assets --source site/ --destination out/ --relative",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every key (DEBUG level)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    download_parser = subparsers.add_parser(
        "download",
        help="Download a prefix or a single key",
        description=(
            "Download every object under SOURCE into DESTINATION. DESTINATION is a "
            "directory only when it ends with '/' or already exists as one; otherwise "
            "the single key SOURCE is written to that file path."
        ),
    )
    download_parser.add_argument("--bucket", dest="bucket_name", help="Bucket to download from")
    download_parser.add_argument("--destination", help="Local file or directory (directory if it ends with '/')")
    download_parser.add_argument("--source", default="", help="Key prefix, or a single key (default: whole bucket)")
    download_parser.add_argument(
        "--relative",
        action="store_true",
        help="Strip SOURCE from local paths instead of recreating the full key",
    )
    download_parser.add_argument("--exclude", help="Skip keys ending with this suffix (e.g. .mdl)")
    download_parser.add_argument("--endpoint", help="Override the S3 endpoint URL")
    download_parser.add_argument("--access-key", help="S3 access key")
    download_parser.add_argument("--secret-key", help="S3 secret key")
    download_parser.add_argument("--profile", help="Use endpoint and credentials from a saved profile")
    download_parser.add_argument(
        "--allow-default-credentials",
        action="store_true",
        help="Fall back to the default AWS credential chain when keys are missing",
    )

    profile_parser = subparsers.add_parser("profile", help="Manage saved connection profiles")
    profile_commands = profile_parser.add_subparsers(dest="profile_command", help="Profile commands")
    profile_commands.add_parser("list", help="List saved profiles")
    save_parser = profile_commands.add_parser("save", help="Create or replace a profile")
    save_parser.add_argument("name")
    save_parser.add_argument("--endpoint", default="", help="Endpoint URL")
    save_parser.add_argument("--access-key", required=True)
    save_parser.add_argument("--secret-key", default="", help="Stored in the OS keychain")
    delete_parser = profile_commands.add_parser("delete", help="Delete a profile")
    delete_parser.add_argument("name")

    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def cmd_download(args: argparse.Namespace, controller: S3DownloadController) -> int:
    try:
        config = controller.build_config(
            bucket_name=args.bucket_name,
            destination=args.destination,
            source=args.source,
            relative=args.relative,
            exclude=args.exclude,
            endpoint=args.endpoint,
            access_key=args.access_key,
            secret_key=args.secret_key,
            profile_name=args.profile,
            allow_default_credentials=args.allow_default_credentials,
        )
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return EXIT_USAGE

    try:
        controller.download(config)
    except BucketNotFoundError as exc:
        LOGGER.error("Bucket not found: %s", exc)
        return EXIT_FAILURE
    except TransferError as exc:
        LOGGER.error("Unable to download file from S3: %s", exc)
        LOGGER.debug("Transfer failure details", exc_info=True)
        return EXIT_FAILURE
    return EXIT_OK


def cmd_profile(args: argparse.Namespace, controller: S3DownloadController) -> int:
    try:
        if args.profile_command == "list":
            for profile in controller.list_profiles():
                print(f"{profile.name}\t{profile.endpoint_url or '-'}\t{profile.access_key}")
        elif args.profile_command == "save":
            controller.save_profile(
                ConnectionProfile(
                    name=args.name,
                    endpoint_url=args.endpoint,
                    access_key=args.access_key,
                    secret_key=args.secret_key,
                )
            )
            LOGGER.info("Saved profile '%s'", args.name)
        elif args.profile_command == "delete":
            controller.delete_profile(args.name)
            LOGGER.info("Deleted profile '%s'", args.name)
        else:
            LOGGER.error("A profile command is required (list, save, delete)")
            return EXIT_USAGE
    except ConfigurationError as exc:
        LOGGER.error("Configuration error: %s", exc)
        return EXIT_USAGE
    return EXIT_OK


def main(argv: Optional[list[str]] = None, controller: Optional[S3DownloadController] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)

    if args.command is None:
        parser.print_help()
        return EXIT_USAGE

    controller = controller or S3DownloadController()
    if args.command == "download":
        return cmd_download(args, controller)
    return cmd_profile(args, controller)


if __name__ == "__main__":
    sys.exit(main())

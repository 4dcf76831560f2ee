"""
Command Line Interface for the photo upload queue.
"""

import argparse
import logging
import os
from typing import Dict, List, Optional

import urllib3

from .local_uploader import LocalConfig, LocalUploader
from .queue_config import QueueConfig
from .queue_progress import QueueProgress
from .reporter import Reporter
from .s3_config import S3Config
from .s3_uploader import S3Uploader
from .source_file import SourceFile
from .upload_queue import UploadQueue
from .uploader import RemoteUploader
from .validation import FileValidator


def setup_logging(verbose: bool) -> logging.Logger:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logging.getLogger('boto3').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('s3transfer').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('PIL').setLevel(logging.WARNING)

    return logging.getLogger('photoqueue')


def get_queue_config(args: argparse.Namespace) -> QueueConfig:
    """Get queue configuration from environment and CLI overrides."""
    config = QueueConfig.from_env()

    if getattr(args, 'concurrency', None):
        config.concurrency = args.concurrency
    if getattr(args, 'max_retries', None) is not None:
        config.max_retries = args.max_retries
    if getattr(args, 'retry_delay_ms', None) is not None:
        config.retry_base_delay_ms = args.retry_delay_ms
    if getattr(args, 'max_file_size', None):
        config.max_file_size = args.max_file_size
    if getattr(args, 'max_items', None):
        config.max_items = args.max_items

    return config


def get_s3_config(args: argparse.Namespace) -> S3Config:
    """Get S3 configuration from environment and CLI overrides."""
    config = S3Config.from_env()

    if getattr(args, 's3_endpoint', None):
        config.endpoint = args.s3_endpoint
    if getattr(args, 's3_bucket', None):
        config.bucket = args.s3_bucket
    if getattr(args, 's3_prefix', None):
        config.prefix = args.s3_prefix
    if getattr(args, 's3_access_key', None):
        config.access_key = args.s3_access_key
    if getattr(args, 's3_secret_key', None):
        config.secret_key = args.s3_secret_key
    if getattr(args, 'folder', None):
        config.folder = args.folder
    if getattr(args, 'insecure', False):
        config.verify_ssl = False

    return config


def get_uploader(args: argparse.Namespace, logger: logging.Logger) -> RemoteUploader:
    """
    Get the remote store adapter selected by the arguments.

    Raises:
        ValueError: If the storage configuration is invalid
    """
    local_root = getattr(args, 'local_root', None)

    if local_root:
        config = LocalConfig(
            root_path=local_root,
            prefix=getattr(args, 'local_prefix', None) or 'uploads',
            folder=getattr(args, 'folder', None) or 'guest_photos',
        )
        errors = config.validate()
        if errors:
            for error in errors:
                logger.error(error)
            raise ValueError("Local configuration invalid")

        logger.info("Storage: Local filesystem")
        logger.info(f"Target: {config.target_dir}")
        return LocalUploader(config, logger)

    config = get_s3_config(args)
    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        raise ValueError("S3 configuration invalid")

    if not config.verify_ssl:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    logger.info("Storage: S3")
    logger.info(f"Endpoint: {config.endpoint}")
    logger.info(f"Bucket: {config.bucket}/{config.prefix}/{config.folder}")
    return S3Uploader(config, logger)


def collect_paths(paths: List[str]) -> List[str]:
    """Expand directories (one level) into the files they contain."""
    collected = []
    for path in paths:
        if os.path.isdir(path):
            for name in sorted(os.listdir(path)):
                full_path = os.path.join(path, name)
                if os.path.isfile(full_path):
                    collected.append(full_path)
        else:
            collected.append(path)
    return collected


def load_files(paths: List[str], logger: logging.Logger) -> List[SourceFile]:
    """Read files from disk, skipping unreadable ones."""
    files = []
    for path in collect_paths(paths):
        try:
            files.append(SourceFile.from_path(path))
        except OSError as e:
            logger.error(f"Cannot read {path}: {e}")
    return files


def parse_captions(values: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse NAME=TEXT caption arguments.

    Raises:
        ValueError: If a value has no '='
    """
    captions = {}
    for value in values or []:
        name, sep, text = value.partition('=')
        if not sep or not name:
            raise ValueError(f"Caption must be NAME=TEXT: {value}")
        captions[os.path.basename(name)] = text
    return captions


def add_storage_arguments(parser: argparse.ArgumentParser) -> None:
    """Add storage configuration arguments to a parser."""
    local_group = parser.add_argument_group('Local Storage')
    local_group.add_argument('--local-root', metavar='PATH',
                             help='Store uploads on the local filesystem instead of S3')
    local_group.add_argument('--local-prefix', default='uploads',
                             help='Prefix within local root (default: uploads)')

    s3_group = parser.add_argument_group('S3 Storage')
    s3_group.add_argument('--s3-endpoint', help='Override S3_ENDPOINT')
    s3_group.add_argument('--s3-bucket', help='Override S3_BUCKET')
    s3_group.add_argument('--s3-prefix', help='Override S3_PREFIX')
    s3_group.add_argument('--s3-access-key', help='Override S3_ACCESS_KEY')
    s3_group.add_argument('--s3-secret-key', help='Override S3_SECRET_KEY')
    s3_group.add_argument('--insecure', action='store_true', help='Skip TLS certificate verification')

    parser.add_argument('--folder', help='Event folder for uploads (default: guest_photos)')


def add_queue_arguments(parser: argparse.ArgumentParser) -> None:
    """Add validation policy arguments to a parser."""
    parser.add_argument('--max-file-size', type=int, metavar='BYTES',
                        help='Largest accepted file (default: 10MB)')
    parser.add_argument('--max-items', type=int, metavar='N',
                        help='Maximum files per batch (default: 20)')


def report_validation(
    files: List[SourceFile],
    config: QueueConfig,
    logger: logging.Logger,
    quiet: bool = False
) -> int:
    """Validate files without uploading; returns an exit code."""
    validator = FileValidator(config, logger)
    accepted, rejected = validator.validate_batch(files)

    if not quiet:
        for file in accepted:
            print(f"  [OK] {file.name} ({file.size:,} bytes, {file.content_type or 'unknown type'})")
        Reporter().report_rejections(rejected)
        print()
        print(f"Accepted: {len(accepted)}")
        print(f"Rejected: {len(rejected)}")

    return 0 if not rejected and accepted else 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Execute validate command."""
    logger = setup_logging(args.verbose)
    config = get_queue_config(args)

    files = load_files(args.paths, logger)
    if not files:
        logger.error("No readable files given")
        return 1

    return report_validation(files, config, logger, quiet=args.quiet)


def cmd_upload(args: argparse.Namespace) -> int:
    """Execute upload command."""
    logger = setup_logging(args.verbose)
    config = get_queue_config(args)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(error)
        return 1

    try:
        captions = parse_captions(args.caption)
    except ValueError as e:
        logger.error(str(e))
        return 1

    files = load_files(args.paths, logger)
    if not files:
        logger.error("No readable files given")
        return 1

    if args.dry_run:
        logger.info("[DRY RUN] Validating only, nothing will be uploaded")
        return report_validation(files, config, logger, quiet=args.quiet)

    try:
        uploader = get_uploader(args, logger)
    except ValueError:
        return 1

    logger.info(f"Concurrency: {config.concurrency}, max retries: {config.max_retries}")

    queue = UploadQueue(uploader, config=config, logger=logger)
    reporter = Reporter()

    try:
        if not args.quiet:
            queue.subscribe(QueueProgress(show_files=args.show_files, logger=logger))

        result = queue.enqueue(files, captions=captions)
        if not result.ids:
            logger.error("No files accepted for upload")
            if not args.quiet:
                reporter.report_rejections(result.rejected)
            return 1

        queue.start()
        queue.wait_until_idle()

        snapshot = queue.snapshot()
        stats = queue.stats()
        if not args.quiet:
            print()
            reporter.report_summary(stats)
            if args.show_files:
                reporter.report_items(snapshot)
            reporter.report_failures(snapshot)
            reporter.report_rejections(result.rejected)

        if args.report_json:
            reporter.save_json(args.report_json, snapshot, stats, result.rejected)

        return 0 if stats.error_count == 0 and not result.rejected else 1

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        queue.shutdown(cancel_pending=True, wait=False)
        return 130
    except Exception as e:
        logger.exception(f"Upload failed: {e}")
        return 1
    finally:
        queue.shutdown()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog='photoqueue',
        description='Upload event photos with compression, retries and progress',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Validate:  python -m photoqueue validate photos/
  Upload:    python -m photoqueue upload photos/ --local-root /mnt/event
  Caption:   python -m photoqueue upload IMG_1.jpg --caption "IMG_1.jpg=First dance"

Storage options:
  Use --local-root for local filesystem, or S3 environment variables for S3.
"""
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Upload command
    upload_parser = subparsers.add_parser('upload', help='Upload photos to the remote store')
    upload_parser.add_argument('paths', nargs='+', help='Files or directories to upload')
    upload_parser.add_argument('--caption', action='append', metavar='NAME=TEXT',
                               help='Caption for a file (repeatable)')
    upload_parser.add_argument('-c', '--concurrency', type=int, help='Concurrent uploads (default: 3)')
    upload_parser.add_argument('--max-retries', type=int, help='Automatic retries per file (default: 3)')
    upload_parser.add_argument('--retry-delay-ms', type=int, help='Backoff unit in ms (default: 2000)')
    upload_parser.add_argument('-n', '--dry-run', action='store_true', help='Validate only')
    upload_parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    upload_parser.add_argument('--show-files', action='store_true',
                               help='Print each file as it changes state')
    upload_parser.add_argument('--report-json', metavar='FILE',
                               help='Write items, totals and rejections to a JSON file')
    upload_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_queue_arguments(upload_parser)
    add_storage_arguments(upload_parser)

    # Validate command
    validate_parser = subparsers.add_parser('validate', help='Check files against the upload policy')
    validate_parser.add_argument('paths', nargs='+', help='Files or directories to check')
    validate_parser.add_argument('-q', '--quiet', action='store_true', help='Only set the exit code')
    validate_parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose logging')
    add_queue_arguments(validate_parser)

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    if parsed_args.command == 'upload':
        return cmd_upload(parsed_args)
    elif parsed_args.command == 'validate':
        return cmd_validate(parsed_args)

    return 1


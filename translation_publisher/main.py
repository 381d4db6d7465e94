from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv
from .cloud_storage import CloudStorageClient, CredentialsError, load_credentials
from .config import AppConfig, load_config
from .excel_reader import WorkbookError, extract_sheet_header, fetch_sheet
from .notifier import RemoteConfigNotifier
from .pipeline import build_translation_sets, write_translation_files
from .publisher import VersionedPublisher

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _load_env_files(config_path: Path | None) -> None:
    """Load environment variables from .env files."""

    # Load default .env in current working directory if present
    load_dotenv(override=False)

    # Load .env placed next to the config file if it exists
    if config_path is not None:
        config_env = config_path.parent / ".env"
        if config_env.exists():
            load_dotenv(dotenv_path=config_env, override=False)


LOGGER = logging.getLogger("translation_publisher")


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a translation spreadsheet into versioned JSON files on Cloud Storage"
    )
    parser.add_argument("--config", default=None, help="Path to the YAML configuration file")
    parser.add_argument(
        "--input",
        default=None,
        help="Path to the .xlsx workbook; prompted for on stdin when omitted",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Write the JSON files locally without touching the bucket",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def _prompt_input_path() -> str:
    try:
        return input("Enter the Excel (.xlsx) filename (with path if needed): ").strip()
    except EOFError:
        return ""


def run_pipeline(excel_path: Path, config: AppConfig, *, dry_run: bool = False) -> int:
    """Build the translation files from ``excel_path`` and publish them."""

    try:
        credentials = load_credentials(config.storage.resolved_credentials_file())
    except CredentialsError as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE

    workbook = config.workbook
    output_dir = config.output_dir.expanduser().resolve()
    try:
        with CloudStorageClient(config.storage, credentials=credentials) as client:
            LOGGER.info("Resolving version from bucket '%s'", config.storage.scope_label)
            publisher = VersionedPublisher.create(client, config.storage, workbook.locales, output_dir)

            LOGGER.info("Reading sheet '%s' from %s", workbook.sheet_name, excel_path)
            sheet = fetch_sheet(excel_path, workbook.sheet_name)
            if sheet is None:
                LOGGER.error("Aborting before any change to the bucket")
                return EXIT_FAILURE

            header_map = extract_sheet_header(sheet, workbook.header_begin_row, workbook.header_begin_col)
            sets = build_translation_sets(
                sheet,
                header_map,
                workbook.language_columns,
                workbook.locales,
                workbook.header_begin_row,
            )
            LOGGER.info("Generating JSON files for version %s", publisher.new_version)
            write_translation_files(sets, publisher.new_version, output_dir)

            if dry_run:
                LOGGER.info("Dry run enabled; JSON files kept in %s", output_dir)
                return EXIT_OK

            report = publisher.publish()
    except WorkbookError as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE
    except Exception:
        LOGGER.exception("An error occurred while running the translation pipeline")
        return EXIT_FAILURE

    if not report.succeeded:
        LOGGER.error("Translation pipeline finished with errors: %s", report.summary())
        return EXIT_FAILURE

    RemoteConfigNotifier(config.notification).notify_lang_version_update()
    LOGGER.info("Translation pipeline completed successfully: %s", report.summary())
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    config_path = Path(args.config).expanduser().resolve() if args.config else None
    _load_env_files(config_path)
    try:
        config = load_config(config_path) if config_path else AppConfig.defaults()
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE

    input_path = args.input or _prompt_input_path()
    if not input_path:
        print("No input file provided. Aborting.", file=sys.stderr)
        return EXIT_FAILURE

    excel_path = Path(input_path).expanduser()
    if not excel_path.exists():
        print(f"File '{input_path}' not found.", file=sys.stderr)
        return EXIT_FAILURE

    return run_pipeline(excel_path, config, dry_run=args.dry_run)


def run() -> None:
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    run()

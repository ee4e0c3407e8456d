"""
Command-line interface for the Shopp to WooCommerce migrator.
"""

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from shopp_migrator import __version__
from shopp_migrator.config import ConfigError, Settings, get_settings
from shopp_migrator.core.analyzer import FORMATS, analyze, render_report
from shopp_migrator.core.catalog_writer import WooCatalogWriter
from shopp_migrator.core.converter import ProductConverter
from shopp_migrator.core.housekeeping import empty_trash, install_plugins
from shopp_migrator.core.legacy_store import ShoppDatabaseStore
from shopp_migrator.core.media import MediaSideloader
from shopp_migrator.core.taxonomy import migrate_terms
from shopp_migrator.core.woo_client import WooClient, WooCommerceError
from shopp_migrator.core.wp_client import WPClient, WordPressError
from shopp_migrator.core.wp_database import WordPressDatabase
from shopp_migrator.logging_config import setup_logging

__all__ = ["main", "parse_args", "MigrationContext"]

logger = logging.getLogger(__name__)

CONFIRM_PROMPT = (
    "This command will migrate Shopp categories, tags, and products to WooCommerce. "
    "Are you sure you want to proceed? [y/n] "
)


class MigrationContext:
    """
    Lazily built collaborators for one CLI run.

    Only the services a command touches are created, so e.g. `analyze` never
    needs REST credentials.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._db: Optional[WordPressDatabase] = None
        self._woo: Optional[WooClient] = None
        self._wp: Optional[WPClient] = None

    @property
    def db(self) -> WordPressDatabase:
        if self._db is None:
            self._db = WordPressDatabase.from_url(self.settings.db_url, self.settings.table_prefix)
        return self._db

    @property
    def store(self) -> ShoppDatabaseStore:
        return ShoppDatabaseStore(
            self.db,
            image_url_template=self.settings.legacy_image_url,
            store_url=self.settings.store_url or "",
        )

    @property
    def woo(self) -> WooClient:
        if self._woo is None:
            s = self.settings
            self._woo = WooClient(
                store_url=s.store_url,
                consumer_key=s.consumer_key,
                consumer_secret=s.consumer_secret,
                wp_username=s.wp_username,
                wp_app_password=s.wp_app_password,
                rate_limit_rps=s.rate_limit_rps,
                timeout=s.timeout,
            )
        return self._woo

    @property
    def wp(self) -> WPClient:
        if self._wp is None:
            s = self.settings
            if not self.has_wp_credentials:
                raise ConfigError("wp_username and wp_app_password are required for media and plugin operations")
            self._wp = WPClient(s.store_url, s.wp_username, s.wp_app_password, timeout=s.timeout)
        return self._wp

    @property
    def has_wp_credentials(self) -> bool:
        return bool(self.settings.wp_username and self.settings.wp_app_password)

    @property
    def writer(self) -> WooCatalogWriter:
        """Catalog writer; media operations are only available with WordPress credentials."""
        return WooCatalogWriter(self.woo, self.wp if self.has_wp_credentials else None, self.db)

    def close(self):
        if self._woo is not None:
            self._woo.close()
        if self._wp is not None:
            self._wp.close()
        if self._db is not None:
            self._db.engine.dispose()


def cmd_analyze(ctx: MigrationContext, args: argparse.Namespace) -> int:
    report = analyze(ctx.store, per_page=ctx.settings.per_page, progress=not args.quiet)
    print(render_report(report, getattr(args, "format", "table")))
    return 0


def cmd_migrate_terms(ctx: MigrationContext, args: argparse.Namespace) -> int:
    for result in migrate_terms(ctx.writer, ctx.store):
        logger.info(
            f"{result.new_taxonomy}: {result.new_count} terms ({result.old_taxonomy}: {result.old_count} left)"
        )
    return 0


def cmd_migrate_products(ctx: MigrationContext, args: argparse.Namespace) -> int:
    per_page = getattr(args, "per_page", None) or ctx.settings.per_page
    verify = ctx.settings.verify and not getattr(args, "no_verify", False)

    writer = WooCatalogWriter(ctx.woo, ctx.wp, ctx.db)
    sideloader = MediaSideloader(writer, timeout=max(ctx.settings.timeout, 60.0))
    try:
        converter = ProductConverter(ctx.store, writer, sideloader, verify=verify, per_page=per_page)
        converter.migrate_all(progress=not args.quiet)
    finally:
        sideloader.close()
    return 0


def cmd_install_plugins(ctx: MigrationContext, args: argparse.Namespace) -> int:
    install_plugins(ctx.wp)
    return 0


def cmd_empty_trash(ctx: MigrationContext, args: argparse.Namespace) -> int:
    empty_trash(ctx.db)
    return 0


def cmd_migrate(ctx: MigrationContext, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input(CONFIRM_PROMPT).strip().lower()
        if answer not in ("y", "yes"):
            logger.info("Migration cancelled.")
            return 0

    steps = [
        ("Ensuring both Shopp and WooCommerce are installed and active:", cmd_install_plugins),
        ("Emptying trash:", cmd_empty_trash),
        ("Analyzing current content:", cmd_analyze),
        ("Migrating taxonomy terms:", cmd_migrate_terms),
        ("Migrating products:", cmd_migrate_products),
    ]
    for message, step in steps:
        logger.info(message)
        step(ctx, args)

    logger.info("Shopp data has been migrated successfully!")
    return 0


COMMANDS: Dict[str, Callable[[MigrationContext, argparse.Namespace], int]] = {
    "analyze": cmd_analyze,
    "migrate-terms": cmd_migrate_terms,
    "migrate-products": cmd_migrate_products,
    "migrate": cmd_migrate,
    "install-plugins": cmd_install_plugins,
    "empty-trash": cmd_empty_trash,
}


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="shopp-migrate",
        description="Migrate a WordPress site's Shopp catalog to WooCommerce",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # See what the catalog contains before migrating
  shopp-migrate analyze

  # Run every step with the default settings
  shopp-migrate migrate --yes

  # Convert products only, without the post-save check
  shopp-migrate migrate-products --per-page 25 --no-verify

Connection settings come from SHOPP_MIGRATE_* environment variables, a .env
file, or a JSON file passed with --config.
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="JSON file with site settings (overrides the environment)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Console log level (default: SHOPP_MIGRATE_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Hide progress bars",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Count what needs to be migrated")
    analyze_parser.add_argument("--format", choices=FORMATS, default="table", help="Output format (default: table)")

    subparsers.add_parser("migrate-terms", help="Move Shopp categories and tags to WooCommerce")

    products_parser = subparsers.add_parser("migrate-products", help="Convert Shopp products to WooCommerce")
    products_parser.add_argument("--per-page", type=int, help="Products fetched per page (default: 50)")
    products_parser.add_argument("--no-verify", action="store_true", help="Skip post-save verification")

    migrate_parser = subparsers.add_parser("migrate", help="Run every migration step in order")
    migrate_parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("install-plugins", help="Ensure Shopp and WooCommerce are installed and active")
    subparsers.add_parser("empty-trash", help="Permanently delete up to 1000 trashed posts")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(args.log_level or "INFO")

    try:
        settings = get_settings(args.config)
    except (ConfigError, FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if not args.log_level:
        setup_logging(settings.log_level)

    ctx = MigrationContext(settings)
    try:
        return COMMANDS[args.command](ctx, args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1
    except (WooCommerceError, WordPressError) as e:
        logger.error(f"API error: {e}")
        return 1
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        return 1
    finally:
        ctx.close()


if __name__ == "__main__":
    sys.exit(main())

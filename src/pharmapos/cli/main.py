"""Main CLI entry point."""

import logging
import sys

import click
from pharmapos.database.factories import create_sqlite_database

# Import and register all commands at module level
from pharmapos.cli.commands import (
    product,
    customer,
    sale,
    ledger,
)

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Handler installed by the last configure_logging call
_stderr_handler: logging.Handler | None = None


def configure_logging(level: str) -> logging.Handler:
    """Send package logs to stderr at the given level."""
    global _stderr_handler
    logger = logging.getLogger("pharmapos")
    logger.setLevel(level.upper())
    # sys.stderr may have been swapped since the last call
    if _stderr_handler is not None:
        logger.removeHandler(_stderr_handler)
    _stderr_handler = logging.StreamHandler(sys.stderr)
    _stderr_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(_stderr_handler)
    return _stderr_handler


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides PHARMAPOS_DB_PATH environment variable)",
    envvar="PHARMAPOS_DB_PATH",
)
@click.option(
    "--allow-negative-stock/--no-allow-negative-stock",
    default=True,
    show_default=True,
    envvar="PHARMAPOS_ALLOW_NEGATIVE_STOCK",
    help="Let sales take product quantities below zero",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="PHARMAPOS_LOG_LEVEL",
    help="Logging verbosity on stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, allow_negative_stock: bool, log_level: str):
    """Pharmapos - Pharmacy point of sale.

    Record sales against the product catalog, keep customer segments and
    loyalty points current, and post every sale and refund to the ledger.
    """
    ctx.ensure_object(dict)
    configure_logging(log_level)
    ctx.obj["allow_negative_stock"] = allow_negative_stock

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
product.register_commands(cli)
customer.register_commands(cli)
sale.register_commands(cli)
ledger.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

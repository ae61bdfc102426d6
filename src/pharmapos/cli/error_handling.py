"""CLI error handling helpers."""

import logging

import click

from pharmapos.domain.errors import DomainError, ValidationError

logger = logging.getLogger(__name__)


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ValidationError) and error.invalid_fields and error.missing_fields:
        click.echo(f"  Invalid: {', '.join(error.invalid_fields)}", err=True)
    logger.debug("Command failed", exc_info=error)
    ctx.exit(1)

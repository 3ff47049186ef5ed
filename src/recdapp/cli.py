"""CLI entry point for the product registry client."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable

import click

from .core.enums import Classification
from .core.errors import RecDappError
from .core.models import Outcome

Operation = Callable[[Any], Awaitable[Outcome[Any]]]


def _run(config: str | None, operation: Operation) -> None:
    """Connect, run one operation against the client, echo its outcome."""
    from .main import bootstrap

    async def runner() -> Outcome[Any]:
        runtime = bootstrap(config_path=config)
        try:
            await runtime.connect()
            return await operation(runtime.client)
        finally:
            await runtime.close()

    try:
        outcome = asyncio.run(runner())
    except RecDappError as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(1)

    click.echo(json.dumps(outcome.to_dict(), indent=2))
    if outcome.classification == Classification.FATAL:
        sys.exit(1)


@click.group()
def main() -> None:
    """RecDApp product lifecycle client."""


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.option("--type", "type_index", required=True, help="Type index 0-3 or name")
@click.option("--name", required=True, help="Product name")
@click.option("--content-uri", default=None, help="Existing ipfs:// content URI")
@click.option("--archive", type=click.Path(exists=True, dir_okay=False), default=None,
              help="CAR archive to publish first")
def produce(
    config: str | None,
    type_index: str,
    name: str,
    content_uri: str | None,
    archive: str | None,
) -> None:
    """Produce a new product."""
    if bool(content_uri) == bool(archive):
        raise click.UsageError("Pass exactly one of --content-uri or --archive")
    if archive:
        _run(config, lambda c: c.publish_and_produce(type_index, name, archive))
    else:
        _run(config, lambda c: c.produce(type_index, content_uri, name))


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.argument("product_address")
def inspect(config: str | None, product_address: str) -> None:
    """Show a product's registry record."""
    _run(config, lambda c: c.get_product(product_address))


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.option("--products", required=True, help="List literal, e.g. \"['0x..','0x..']\"")
@click.option("--to", "recipient", required=True, help="Recipient address")
def transfer(config: str | None, products: str, recipient: str) -> None:
    """Transfer products to a recipient."""
    _run(config, lambda c: c.transfer_batch(products, recipient))


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.option("--recycle", is_flag=True, help="Send to recycling instead of destroying")
@click.argument("product_address")
def burn(config: str | None, recycle: bool, product_address: str) -> None:
    """Burn a product."""
    _run(config, lambda c: c.burn(product_address, recycle))


@main.command()
@click.option("--config", default=None, help="Config file path")
@click.argument("product_address")
def recycle(config: str | None, product_address: str) -> None:
    """Re-produce a product pending recycling."""
    _run(config, lambda c: c.recycle_produce(product_address))


if __name__ == "__main__":
    main()

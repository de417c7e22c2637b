"""CLI entry point for invoice-sorter."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from invoice_sorter.adapters.imap import ImapMailSource
from invoice_sorter.config import (
    get_gemini_api_key,
    get_imap_config,
    get_store_path,
    load_settings,
)
from invoice_sorter.gemini import GeminiTransport
from invoice_sorter.models import Attachment
from invoice_sorter.pipeline import build_pipeline, process_mailbox
from invoice_sorter.store import LocalBlobStore


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Invoice Sorter — file PDF invoices from email by date."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
def run() -> None:
    """Process matching mail threads and file invoice attachments."""
    settings = load_settings()
    store = LocalBlobStore(get_store_path())
    transport = GeminiTransport(get_gemini_api_key(), settings.model)
    pipeline = build_pipeline(store, transport, settings)

    with ImapMailSource(get_imap_config()) as source:
        summary = process_mailbox(source, pipeline, store, settings)

    click.echo(summary.describe())


@cli.command()
@click.option("--query", default=None, help="Override the configured search query.")
def search(query: str | None) -> None:
    """List threads and attachments matching the search query."""
    settings = load_settings()
    query = query or settings.search_query
    click.echo(f'Searching with query: "{query}"')

    with ImapMailSource(get_imap_config()) as source:
        threads = source.search(query)

    click.echo(f"Found {len(threads)} threads")
    for index, thread in enumerate(threads, start=1):
        click.echo(f"--- Thread {index} ---")
        for message in thread.messages:
            click.echo(f"  Subject: {message.subject}")
            click.echo(f"  From: {message.sender}")
            click.echo(f"  Attachments: {len(message.attachments)}")
            for attachment in message.attachments:
                click.echo(f"    {attachment.name} ({attachment.content_type})")


@cli.command(name="file")
@click.argument(
    "paths",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
def file_command(paths: tuple[Path, ...]) -> None:
    """Run local PDF files through the pipeline."""
    settings = load_settings()
    store = LocalBlobStore(get_store_path())
    transport = GeminiTransport(get_gemini_api_key(), settings.model)
    pipeline = build_pipeline(store, transport, settings)
    root = store.get_or_create_folder(None, settings.root_folder_name)

    for path in paths:
        attachment = Attachment(
            name=path.name,
            content_type="application/pdf",
            data=path.read_bytes(),
        )
        outcome = pipeline.process(attachment, root)
        detail = outcome.stable_id or outcome.reason or ""
        click.echo(f"{path.name}: {outcome.kind.value} {detail}".rstrip())

"""Attachment processing pipeline and mailbox batch run."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from invoice_sorter.classifier import DocumentClassifier
from invoice_sorter.client import RetryingModelClient
from invoice_sorter.duplicates import DuplicateIndex
from invoice_sorter.hashing import ContentHasher
from invoice_sorter.models import Outcome, RunSummary
from invoice_sorter.pdf import count_pages

if TYPE_CHECKING:
    from invoice_sorter.adapters.base import MailSource
    from invoice_sorter.client import Transport
    from invoice_sorter.config import Settings
    from invoice_sorter.hashing import HashCache
    from invoice_sorter.models import Attachment
    from invoice_sorter.store import BlobStore

logger = logging.getLogger(__name__)

TOO_MANY_PAGES = "too many pages"
NOT_AN_INVOICE = "not an invoice"
NO_DATE_FOUND = "no date found"


class AttachmentPipeline:
    """Decide whether an attachment is new, already stored, or rejected.

    Steps short-circuit in cost order: page count, duplicate scan, then
    the two model calls, and finally placement under root/YYYY/MM.
    """

    def __init__(
        self,
        store: BlobStore,
        hasher: ContentHasher,
        index: DuplicateIndex,
        classifier: DocumentClassifier,
        settings: Settings,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.index = index
        self.classifier = classifier
        self.settings = settings

    def process(self, attachment: Attachment, root: Any) -> Outcome:
        """Process one attachment; never raises."""
        logger.info("Processing: %s", attachment.name)
        try:
            outcome = self._process(attachment, root)
        except Exception as exc:
            logger.error("Error processing %s: %s", attachment.name, exc, exc_info=True)
            return Outcome.error(attachment.name, exc)

        logger.info("%s: %s", attachment.name, outcome.kind.value)
        return outcome

    def _process(self, attachment: Attachment, root: Any) -> Outcome:
        page_count = count_pages(attachment.read_bytes())
        if page_count > self.settings.max_pdf_pages:
            logger.info(
                "Skipping %s: %d pages (max: %d)",
                attachment.name,
                page_count,
                self.settings.max_pdf_pages,
            )
            return Outcome.rejected(attachment.name, TOO_MANY_PAGES)

        digest = self.hasher.hash(attachment)
        stored_name = self.store.normalise_name(attachment.name)
        if self.index.exists_in_tree(root, stored_name, digest):
            logger.info("Already exists: %s", attachment.name)
            return Outcome.already_exists(attachment.name)

        if not self.classifier.is_invoice(attachment):
            logger.info("Not an invoice: %s", attachment.name)
            return Outcome.rejected(attachment.name, NOT_AN_INVOICE)

        invoice_date = self.classifier.extract_date(attachment)
        if invoice_date is None:
            logger.warning("No date found: %s", attachment.name)
            return Outcome.rejected(attachment.name, NO_DATE_FOUND)

        year = str(invoice_date.year)
        month = f"{invoice_date.month:02d}"
        year_folder = self.store.get_or_create_folder(root, year)
        target_folder = self.store.get_or_create_folder(year_folder, month)
        target_name = self.store.normalise_name(f"[{year}-{month}] {attachment.name}")

        # Only the target folder is rechecked; the tree-wide scan ran above.
        # Names are compared as the store writes them.
        name_taken = self.index.name_exists_in_folder(target_folder, target_name)
        if name_taken or self.index.exists_in_folder(target_folder, digest):
            logger.info("Duplicate in target folder: %s", target_name)
            return Outcome.already_exists(attachment.name)

        stable_id = self.store.create_file(
            target_folder, target_name, attachment.read_bytes()
        )
        self.hasher.remember(stable_id, digest)
        logger.info("Saved: %s", stable_id)
        return Outcome.stored(attachment.name, stable_id)


def build_pipeline(
    store: BlobStore,
    transport: Transport,
    settings: Settings,
    *,
    cache: HashCache | None = None,
) -> AttachmentPipeline:
    """Wire a pipeline with a fresh hash cache scoped to one run."""
    hasher = ContentHasher(cache)
    return AttachmentPipeline(
        store=store,
        hasher=hasher,
        index=DuplicateIndex(store, hasher),
        classifier=DocumentClassifier(RetryingModelClient(transport, settings)),
        settings=settings,
    )


def process_mailbox(
    source: MailSource,
    pipeline: AttachmentPipeline,
    store: BlobStore,
    settings: Settings,
) -> RunSummary:
    """Search the mailbox and run every PDF attachment through ``pipeline``.

    A thread is labelled when at least one of its attachments was stored
    or found to be stored already.
    """
    summary = RunSummary()
    threads = source.search(settings.search_query)
    logger.info("Found %d threads matching query.", len(threads))
    if not threads:
        return summary

    root = store.get_or_create_folder(None, settings.root_folder_name)

    for thread in threads:
        summary.threads += 1
        handled = False

        for message in thread.messages:
            for attachment in message.attachments:
                logger.info(
                    "Found attachment: %s (%s)",
                    attachment.name,
                    attachment.content_type,
                )
                if not attachment.is_pdf:
                    logger.info("Skipping non-PDF: %s", attachment.name)
                    summary.skipped_attachments += 1
                    continue

                outcome = pipeline.process(attachment, root)
                summary.record(outcome)
                handled = handled or outcome.handled

        if settings.processed_label and handled:
            source.mark_handled(thread, settings.processed_label)
            summary.labelled_threads += 1

    logger.info("Run complete: %s", summary.describe())
    return summary

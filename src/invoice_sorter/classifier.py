"""Invoice classification and invoice date extraction via the model."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from invoice_sorter.models import Attachment

logger = logging.getLogger(__name__)

NOT_FOUND = "NOT_FOUND"

_CLASSIFY_PROMPT = """\
Analyze this PDF document and determine if it is an invoice or billing document.

Document filename: {name}

Is this document an invoice or billing document? Respond with only "YES" or "NO".\
"""

_DATE_PROMPT = f"""\
Extract the invoice date from this invoice PDF document.
Look for the actual invoice date, issue date, or billing date - NOT other dates \
like due dates, order dates, or service period dates.
The invoice can be written in different languages, so you need to be able to \
understand the language and extract the date.

Extract ONLY the invoice date in ISO format (YYYY-MM-DD). If you cannot find a \
clear invoice date, respond with "{NOT_FOUND}".
Respond with ONLY the date in YYYY-MM-DD format, nothing else.\
"""

_ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


class ModelClient(Protocol):
    def ask(self, prompt: str, attachment: Attachment) -> str: ...


class DocumentClassifier:
    """Typed questions about a PDF, answered by the model.

    Both operations lean towards not filing: an unclear answer means
    "not an invoice" or "no date". Call failures still propagate.
    """

    def __init__(self, client: ModelClient) -> None:
        self.client = client

    def is_invoice(self, attachment: Attachment) -> bool:
        """Return True only if the model answers starting with YES."""
        prompt = _CLASSIFY_PROMPT.format(name=attachment.name)
        answer = self.client.ask(prompt, attachment)
        return answer.strip().upper().startswith("YES")

    def extract_date(self, attachment: Attachment) -> date | None:
        """Return the invoice issue date, or None if the model gives none."""
        answer = self.client.ask(_DATE_PROMPT, attachment)
        return parse_invoice_date(answer)


def parse_invoice_date(answer: str) -> date | None:
    """Parse an answer that is exactly YYYY-MM-DD; anything else gives None."""
    text = answer.strip()
    if not text or text.upper() == NOT_FOUND:
        return None

    if _ISO_DATE_RE.fullmatch(text) is None:
        logger.debug("Model answer is not an ISO date: %r", text)
        return None

    try:
        return date.fromisoformat(text)
    except ValueError:
        logger.debug("Invalid calendar date in model answer %r", text)
        return None

"""Domain models for invoice sorting."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import StrEnum

PDF_CONTENT_TYPE = "application/pdf"
OCTET_STREAM = "application/octet-stream"


@dataclass(frozen=True)
class Attachment:
    """An email attachment or a persisted file.

    ``stable_id`` is set only for content that already lives in a store;
    raw in-memory blobs leave it as ``None`` and are always rehashed.
    """

    name: str
    content_type: str
    data: bytes
    stable_id: str | None = None

    def read_bytes(self) -> bytes:
        return self.data

    @property
    def is_pdf(self) -> bool:
        """True for PDFs, including ones mislabelled as octet-stream."""
        content_type = self.content_type.lower()
        if content_type == PDF_CONTENT_TYPE:
            return True
        return content_type == OCTET_STREAM and self.name.lower().endswith(".pdf")

    @property
    def model_mime_type(self) -> str:
        """MIME type to announce when sending the content to the model."""
        if self.is_pdf:
            return PDF_CONTENT_TYPE
        return self.content_type


@dataclass
class MailMessage:
    """A single message inside a mail thread."""

    message_id: str
    subject: str
    sender: str
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class MailThread:
    """A conversation as returned by a mail source search."""

    thread_id: str
    messages: list[MailMessage] = field(default_factory=list)


class OutcomeKind(StrEnum):
    STORED = "stored"
    ALREADY_EXISTS = "already_exists"
    REJECTED = "rejected"
    ERROR = "error"


@dataclass(frozen=True)
class Outcome:
    """Result of processing one attachment."""

    kind: OutcomeKind
    name: str
    reason: str | None = None
    cause: Exception | None = None
    stable_id: str | None = None

    @classmethod
    def stored(cls, name: str, stable_id: str) -> Outcome:
        return cls(OutcomeKind.STORED, name, stable_id=stable_id)

    @classmethod
    def already_exists(cls, name: str) -> Outcome:
        return cls(OutcomeKind.ALREADY_EXISTS, name)

    @classmethod
    def rejected(cls, name: str, reason: str) -> Outcome:
        return cls(OutcomeKind.REJECTED, name, reason=reason)

    @classmethod
    def error(cls, name: str, cause: Exception) -> Outcome:
        return cls(OutcomeKind.ERROR, name, reason=str(cause), cause=cause)

    @property
    def handled(self) -> bool:
        """Whether the attachment counts as dealt with for thread labelling."""
        return self.kind in (OutcomeKind.STORED, OutcomeKind.ALREADY_EXISTS)


@dataclass
class RunSummary:
    """Counters for a single mailbox run."""

    threads: int = 0
    labelled_threads: int = 0
    skipped_attachments: int = 0
    outcomes: Counter[OutcomeKind] = field(default_factory=Counter)

    def record(self, outcome: Outcome) -> None:
        self.outcomes[outcome.kind] += 1

    def describe(self) -> str:
        counts = ", ".join(
            f"{kind.value}={self.outcomes[kind]}" for kind in OutcomeKind
        )
        return (
            f"threads={self.threads}, labelled={self.labelled_threads}, "
            f"skipped={self.skipped_attachments}, {counts}"
        )

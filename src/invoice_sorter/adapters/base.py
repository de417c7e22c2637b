"""Mail source adapter protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from invoice_sorter.models import MailThread


@runtime_checkable
class MailSource(Protocol):
    """Protocol for mailboxes that attachments are read from."""

    def search(self, query: str) -> list[MailThread]: ...

    def mark_handled(self, thread: MailThread, label: str) -> None: ...

"""Choosing the primary address when a whole list of emails is submitted."""

from collections.abc import Iterator, Sequence

from src.accounts.core.models.payloads import EmailInput


def resolve_primary_flags(
    emails: Sequence[EmailInput],
) -> Iterator[tuple[EmailInput, bool]]:
    """Yield each submitted entry with its effective ``is_primary`` flag.

    The first entry flagged primary wins; when none is flagged, the first
    entry becomes primary. Every other entry is non-primary, whatever it asked
    for. Entries are yielded in submission order so callers can insert them
    one at a time.
    """
    primary_index = next(
        (index for index, entry in enumerate(emails) if entry.is_primary), 0
    )
    for index, entry in enumerate(emails):
        yield entry, index == primary_index

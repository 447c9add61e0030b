"""Insert-once writer guarding the catalog against repeated sync runs."""
import logging
from typing import Optional, Set

from processor.models import CanonicalEvent, DuplicateEventError, PersistedEvent, WriteOutcome
from storage.event_store import EventStore, name_date_key

logger = logging.getLogger(__name__)


class DedupWriter:
    """
    Write canonical events unless an equivalent event already exists.

    Equivalence is checked in order:

    1. A record with a URL matches any stored event with the same URL,
       regardless of its other fields.
    2. A record without a URL matches a stored event with the same name
       and the same start date (both unset counts as the same).

    Store lookups may lag behind recent inserts. The store rejects a second
    insert of an equivalent event, and the writer remembers the name + date
    of everything it inserted, so a lagging lookup cannot produce a
    duplicate. Build one writer per run.
    """

    def __init__(self, store: EventStore):
        self.store = store
        self._inserted_name_dates: Set[str] = set()

    def find_equivalent(self, event: CanonicalEvent) -> Optional[PersistedEvent]:
        """
        Return the stored event equivalent to ``event``, if any.

        Raises:
            StoreError: If a lookup fails
        """
        if event.url:
            return self.store.find_existing_by_url(event.url)
        return self.store.find_existing_by_name_and_date(event.name, event.start_date)

    def write_if_new(self, event: CanonicalEvent) -> WriteOutcome:
        """
        Insert the event unless an equivalent one is already stored.

        Args:
            event: Canonical event to persist

        Returns:
            WriteOutcome.INSERTED or WriteOutcome.SKIPPED

        Raises:
            StoreError: If a lookup or the insert fails
        """
        key = name_date_key(event.name, event.start_date)
        if not event.url and key in self._inserted_name_dates:
            logger.debug(f"Skipping duplicate event '{event.name}' (inserted this run)")
            return WriteOutcome.SKIPPED

        existing = self.find_equivalent(event)
        if existing is not None:
            logger.debug(
                f"Skipping duplicate event '{event.name}' "
                f"(matches {existing.event_id})"
            )
            return WriteOutcome.SKIPPED

        try:
            persisted = self.store.insert(event)
        except DuplicateEventError as e:
            logger.debug(
                f"Skipping duplicate event '{event.name}' "
                f"(already stored as {e.event_id})"
            )
            return WriteOutcome.SKIPPED

        self._inserted_name_dates.add(key)
        logger.debug(f"Inserted new event '{event.name}' as {persisted.event_id}")
        return WriteOutcome.INSERTED

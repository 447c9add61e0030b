"""Unit tests for the deduplicating store writer."""
from datetime import date
from unittest.mock import Mock, patch

import pytest

from processor.models import CanonicalEvent, DuplicateEventError, StoreError, WriteOutcome
from storage.dedup_writer import DedupWriter


@pytest.fixture
def writer(event_store):
    return DedupWriter(event_store)


def count_rows(writer):
    return writer.store.table.scan()['Count']


class TestDedupWriter:
    """Test cases for DedupWriter.write_if_new."""

    def test_inserts_new_event(self, writer):
        event = CanonicalEvent(
            name='Meetup', source_type='connpass',
            start_date=date(2024, 5, 1), url='https://x/1'
        )

        assert writer.write_if_new(event) is WriteOutcome.INSERTED
        assert count_rows(writer) == 1

    def test_url_match_wins_over_other_fields(self, writer):
        """Test a matching URL is a duplicate even when the name differs."""
        writer.write_if_new(CanonicalEvent(
            name='Original Title', source_type='connpass', url='https://x/1'
        ))

        outcome = writer.write_if_new(CanonicalEvent(
            name='Renamed Title', source_type='connpass',
            start_date=date(2024, 6, 1), url='https://x/1'
        ))

        assert outcome is WriteOutcome.SKIPPED
        assert count_rows(writer) == 1

    def test_url_record_ignores_name_and_date_match(self, writer):
        """Test a record with a new URL is inserted despite a name/date twin."""
        writer.write_if_new(CanonicalEvent(
            name='Meetup', source_type='connpass', start_date=date(2024, 5, 1)
        ))

        outcome = writer.write_if_new(CanonicalEvent(
            name='Meetup', source_type='doorkeeper',
            start_date=date(2024, 5, 1), url='https://x/2'
        ))

        assert outcome is WriteOutcome.INSERTED

    def test_name_and_date_fallback(self, writer):
        """Test same name and date is a duplicate; another date is not."""
        writer.write_if_new(CanonicalEvent(
            name='Meetup', source_type='peatix', start_date=date(2024, 5, 1)
        ))

        same_day = CanonicalEvent(name='Meetup', source_type='peatix', start_date=date(2024, 5, 1))
        next_week = CanonicalEvent(name='Meetup', source_type='peatix', start_date=date(2024, 5, 8))

        assert writer.write_if_new(same_day) is WriteOutcome.SKIPPED
        assert writer.write_if_new(next_week) is WriteOutcome.INSERTED
        assert count_rows(writer) == 2

    def test_both_dates_unset_match(self, writer):
        writer.write_if_new(CanonicalEvent(name='Undated', source_type='peatix'))

        outcome = writer.write_if_new(CanonicalEvent(name='Undated', source_type='peatix'))

        assert outcome is WriteOutcome.SKIPPED

    def test_url_lookup_only_when_url_present(self):
        store = Mock()
        store.find_existing_by_url.return_value = None
        store.find_existing_by_name_and_date.return_value = None
        writer = DedupWriter(store)

        writer.write_if_new(CanonicalEvent(name='A', source_type='connpass', url='https://x/1'))
        writer.write_if_new(CanonicalEvent(name='B', source_type='connpass'))

        store.find_existing_by_url.assert_called_once_with('https://x/1')
        store.find_existing_by_name_and_date.assert_called_once_with('B', None)
        assert store.insert.call_count == 2

    def test_store_errors_propagate(self):
        store = Mock()
        store.find_existing_by_url.return_value = None
        store.insert.side_effect = StoreError('insert', RuntimeError('down'))
        writer = DedupWriter(store)

        with pytest.raises(StoreError):
            writer.write_if_new(CanonicalEvent(name='A', source_type='connpass', url='https://x/1'))

    def test_rejected_insert_is_skipped(self):
        store = Mock()
        store.find_existing_by_url.return_value = None
        store.insert.side_effect = DuplicateEventError('abc123')
        writer = DedupWriter(store)

        outcome = writer.write_if_new(CanonicalEvent(name='A', source_type='connpass', url='https://x/1'))

        assert outcome is WriteOutcome.SKIPPED


class TestLaggingIndexes:
    """Lookups that have not yet seen this run's inserts."""

    def test_same_url_twice_is_stored_once(self, writer):
        with patch.object(writer.store, 'find_existing_by_url', return_value=None):
            first = writer.write_if_new(CanonicalEvent(
                name='Meetup', source_type='connpass', url='https://x/1'
            ))
            second = writer.write_if_new(CanonicalEvent(
                name='Meetup', source_type='doorkeeper', url='https://x/1'
            ))

        assert (first, second) == (WriteOutcome.INSERTED, WriteOutcome.SKIPPED)
        assert count_rows(writer) == 1

    def test_same_name_and_date_twice_is_stored_once(self, writer):
        with patch.object(writer.store, 'find_existing_by_name_and_date', return_value=None):
            for _ in range(2):
                writer.write_if_new(CanonicalEvent(
                    name='Meetup', source_type='peatix', start_date=date(2024, 5, 1)
                ))

        assert count_rows(writer) == 1

    def test_url_event_then_undated_twin_in_one_run(self, writer):
        """Test a URL-less twin of an event inserted this run is skipped."""
        writer.write_if_new(CanonicalEvent(
            name='Meetup', source_type='connpass',
            start_date=date(2024, 5, 1), url='https://x/1'
        ))

        with patch.object(writer.store, 'find_existing_by_name_and_date', return_value=None) as lookup:
            outcome = writer.write_if_new(CanonicalEvent(
                name='Meetup', source_type='peatix', start_date=date(2024, 5, 1)
            ))

        assert outcome is WriteOutcome.SKIPPED
        lookup.assert_not_called()
        assert count_rows(writer) == 1

    def test_later_run_relies_on_conditional_insert(self, event_store):
        """Test a fresh writer over a lagging index still skips stored events."""
        event = CanonicalEvent(name='Meetup', source_type='connpass', url='https://x/1')
        DedupWriter(event_store).write_if_new(event)

        with patch.object(event_store, 'find_existing_by_url', return_value=None):
            outcome = DedupWriter(event_store).write_if_new(event)

        assert outcome is WriteOutcome.SKIPPED
        assert event_store.table.scan()['Count'] == 1

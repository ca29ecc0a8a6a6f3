from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from booking_reminders.features.cleaner_reminders.domain import (
    CLEANER_24H_BEFORE,
    Frequency,
    ReminderKey,
)
from booking_reminders.features.cleaner_reminders.services import (
    CleanerReminderJobError,
    CleanerReminderService,
)

NOW = datetime(2024, 6, 16, 14, 5)
OCCURRENCE = datetime(2024, 6, 17, 14, 0)


@pytest.mark.asyncio
async def test_weekly_booking_due_tomorrow_sends_one_reminder(
    build_service, booking_factory, contact_factory, fake_ledger, fake_notifier
):
    booking = booking_factory(frequency=Frequency.WEEKLY)
    service = build_service([booking], [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)

    assert result.scanned_quotes == 1
    assert result.matched_occurrences == 1
    assert result.sent == 1
    assert result.failed == 0
    assert fake_notifier.sent == [("quote-1", "cleaner-1", OCCURRENCE)]
    assert ReminderKey("quote-1", "cleaner-1", OCCURRENCE, CLEANER_24H_BEFORE) in fake_ledger.records


@pytest.mark.asyncio
async def test_second_run_skips_already_sent_reminders(
    build_service, booking_factory, contact_factory, fake_notifier
):
    bookings = [
        booking_factory("quote-1", frequency=Frequency.WEEKLY, cleaners=("cleaner-1", "cleaner-2")),
        booking_factory("quote-2", service_date="2024-06-17", preferred_time="13:30"),
    ]
    contacts = [contact_factory("cleaner-1"), contact_factory("cleaner-2")]
    service = build_service(bookings, contacts)

    first = await service.process_due_reminders(NOW)
    second = await service.process_due_reminders(NOW)

    assert first.sent == 3
    assert second.sent == 0
    assert second.skipped_already_sent == first.sent
    assert second.matched_occurrences == first.matched_occurrences
    assert len(fake_notifier.sent) == 3


@pytest.mark.asyncio
async def test_failed_delivery_does_not_block_other_cleaners_or_bookings(
    build_service, booking_factory, contact_factory, fake_ledger, fake_notifier
):
    fake_notifier.failing_emails.add("a@example.com")
    bookings = [
        booking_factory("quote-x", frequency=Frequency.WEEKLY, cleaners=("cleaner-a", "cleaner-b")),
        booking_factory("quote-y", frequency=Frequency.DAILY, cleaners=("cleaner-c",)),
    ]
    contacts = [
        contact_factory("cleaner-a", "a@example.com"),
        contact_factory("cleaner-b", "b@example.com"),
        contact_factory("cleaner-c", "c@example.com"),
    ]
    service = build_service(bookings, contacts)

    result = await service.process_due_reminders(NOW)

    assert result.failed == 1
    assert result.sent == 2
    assert result.errors[0]["booking_id"] == "quote-x"
    assert result.errors[0]["cleaner_id"] == "cleaner-a"
    recorded = {(key.booking_id, key.cleaner_id) for key in fake_ledger.records}
    assert recorded == {("quote-x", "cleaner-b"), ("quote-y", "cleaner-c")}


@pytest.mark.asyncio
async def test_failed_delivery_is_retried_on_next_run(
    build_service, booking_factory, contact_factory, fake_notifier
):
    fake_notifier.failing_emails.add("cleaner-1@example.com")
    service = build_service([booking_factory(frequency=Frequency.WEEKLY)], [contact_factory("cleaner-1")])

    first = await service.process_due_reminders(NOW)
    fake_notifier.failing_emails.clear()
    second = await service.process_due_reminders(NOW)

    assert first.failed == 1
    assert second.sent == 1
    assert second.skipped_already_sent == 0


@pytest.mark.asyncio
async def test_ledger_write_failure_counts_as_failed(
    build_service, booking_factory, contact_factory, fake_ledger
):
    fake_ledger.record_once = AsyncMock(side_effect=RuntimeError("connection reset"))
    service = build_service([booking_factory(frequency=Frequency.WEEKLY)], [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)

    assert result.failed == 1
    assert result.sent == 0


@pytest.mark.asyncio
async def test_invalid_schedule_only_skips_that_booking(
    build_service, booking_factory, contact_factory
):
    bookings = [
        booking_factory("quote-bad-date", service_date="2024-02-30"),
        booking_factory("quote-bad-time", service_date="2024-06-10", preferred_time="sometime"),
        booking_factory("quote-no-time", service_date="2024-06-10", preferred_time=None),
        booking_factory("quote-ok", frequency=Frequency.WEEKLY),
    ]
    service = build_service(bookings, [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)

    assert result.scanned_quotes == 4
    assert result.skipped_invalid_schedule == 3
    assert result.sent == 1


@pytest.mark.asyncio
async def test_booking_without_cleaner_counts_once(build_service, booking_factory):
    booking = booking_factory(frequency=Frequency.DAILY, cleaners=())
    service = build_service([booking], [])

    # A 49 hour lookback puts three daily occurrences in the window
    service.lookback = timedelta(hours=49)
    result = await service.process_due_reminders(NOW)

    assert result.matched_occurrences == 3
    assert result.skipped_no_cleaner == 1
    assert result.sent == 0


@pytest.mark.asyncio
async def test_missing_contact_counts_per_occurrence_and_cleaner(
    build_service, booking_factory, contact_factory, fake_notifier
):
    booking = booking_factory(frequency=Frequency.DAILY, cleaners=("cleaner-1", "ghost-1", "ghost-2"))
    service = build_service([booking], [contact_factory("cleaner-1")])
    service.lookback = timedelta(hours=49)

    result = await service.process_due_reminders(NOW)

    assert result.matched_occurrences == 3
    assert result.skipped_no_email == 6
    assert result.sent == 3
    assert {sent[1] for sent in fake_notifier.sent} == {"cleaner-1"}


@pytest.mark.asyncio
async def test_booking_outside_window_is_scanned_but_not_matched(
    build_service, booking_factory, contact_factory, fake_notifier
):
    booking = booking_factory(service_date="2024-06-17", preferred_time="8:00 am")
    service = build_service([booking], [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)

    assert result.scanned_quotes == 1
    assert result.matched_occurrences == 0
    assert fake_notifier.sent == []


@pytest.mark.asyncio
async def test_candidate_loader_receives_coarse_max_date(booking_factory, fake_ledger, fake_notifier):
    bookings = AsyncMock()
    bookings.find_due_bookings = AsyncMock(return_value=[])
    directory = AsyncMock()
    service = CleanerReminderService(bookings, directory, fake_ledger, fake_notifier)

    result = await service.process_due_reminders(datetime(2024, 6, 16, 23, 30))

    bookings.find_due_bookings.assert_awaited_once_with("2024-06-17")
    directory.get_contacts_by_ids.assert_not_awaited()
    assert result.scanned_quotes == 0


@pytest.mark.asyncio
async def test_recipient_lookup_is_batched_per_booking(booking_factory, contact_factory, fake_ledger, fake_notifier):
    bookings = AsyncMock()
    bookings.find_due_bookings = AsyncMock(
        return_value=[booking_factory(frequency=Frequency.WEEKLY, cleaners=("c-2", "c-1"))]
    )
    directory = AsyncMock()
    directory.get_contacts_by_ids = AsyncMock(
        return_value={"c-1": contact_factory("c-1"), "c-2": contact_factory("c-2")}
    )
    service = CleanerReminderService(bookings, directory, fake_ledger, fake_notifier)

    result = await service.process_due_reminders(NOW)

    directory.get_contacts_by_ids.assert_awaited_once_with(["c-1", "c-2"])
    assert result.sent == 2


@pytest.mark.asyncio
async def test_candidate_load_failure_raises_job_error(fake_ledger, fake_notifier):
    bookings = AsyncMock()
    bookings.find_due_bookings = AsyncMock(side_effect=RuntimeError("db down"))
    service = CleanerReminderService(bookings, AsyncMock(), fake_ledger, fake_notifier)

    with pytest.raises(CleanerReminderJobError) as exc_info:
        await service.process_due_reminders(NOW)

    assert exc_info.value.operation == "find_due_bookings"


@pytest.mark.asyncio
async def test_run_result_to_dict(build_service, booking_factory, contact_factory):
    service = build_service([booking_factory(frequency=Frequency.WEEKLY)], [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)
    data = result.to_dict()

    assert data["sent"] == 1
    assert data["errors_count"] == 0
    assert "errors" not in data
    assert result.has_deliveries is True


@pytest.mark.asyncio
async def test_reminder_recorded_by_concurrent_run_still_counts_as_sent(
    build_service, booking_factory, contact_factory, fake_ledger, fake_notifier
):
    # exists() sees no row, but another run inserts the key before record_once
    fake_ledger.record_once = AsyncMock(return_value=False)
    service = build_service([booking_factory(frequency=Frequency.WEEKLY)], [contact_factory("cleaner-1")])

    result = await service.process_due_reminders(NOW)

    assert result.sent == 1
    assert result.failed == 0
    assert result.errors == []
    assert fake_notifier.sent == [("quote-1", "cleaner-1", OCCURRENCE)]
    fake_ledger.record_once.assert_awaited_once()

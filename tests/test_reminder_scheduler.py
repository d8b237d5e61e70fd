"""Tests for the reminder scheduler."""

from datetime import time, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from src.exceptions import ChannelError
from src.models import (
    AuditLog,
    Notification,
    NotificationSetting,
    ReminderConfig,
    ReminderSendRecord,
)
from src.models.enums import NotificationPriority, WorkItemStatus
from src.services import audit
from src.services.reminder_scheduler import ReminderScheduler, match_level

THRESHOLDS = {1: 60, 2: 120, 3: 180}


class TestMatchLevel:
    """Tests for reminder window matching."""

    @pytest.mark.parametrize(
        "elapsed,expected",
        [
            (59.9, None),
            (60, 1),
            (61, 1),
            (64.9, 1),
            (65, None),
            (119, None),
            (122, 2),
            (184, 3),
            (400, None),
        ],
    )
    def test_windows(self, elapsed, expected):
        assert match_level(elapsed, THRESHOLDS, 5) == expected

    def test_overlapping_windows_pick_highest_level(self):
        assert match_level(62, {1: 60, 2: 61, 3: 180}, 5) == 2

    def test_coarse_ticks_with_wider_window(self):
        assert match_level(71, THRESHOLDS, 15) == 1


@pytest.fixture
def started_item(make_work_item, test_user, now):
    """In-progress item assigned to the test user, started 61 minutes before NOW."""
    return make_work_item(
        status=WorkItemStatus.IN_PROGRESS,
        assignee_id=test_user.id,
        started_at=now - timedelta(minutes=61),
    )


class TestReminderScheduler:
    """Tests for ReminderScheduler.run."""

    def test_sends_level_one_once(self, db, reminder_config, started_item, channel, now):
        first = ReminderScheduler(db, channel).run(now)
        second = ReminderScheduler(db, channel).run(now + timedelta(minutes=1))
        third = ReminderScheduler(db, channel).run(now + timedelta(minutes=3))

        assert first.sent == 1
        assert first.results[0].level == 1
        assert second.sent == 0
        assert second.skipped == 1
        assert third.sent == 0
        assert db.query(ReminderSendRecord).count() == 1
        assert db.query(Notification).count() == 1

    def test_no_reminder_after_window(self, db, reminder_config, started_item, channel, now):
        ReminderScheduler(db, channel).run(now)

        later = ReminderScheduler(db, channel).run(now + timedelta(minutes=4))

        assert later.sent == 0
        assert later.skipped == 0
        assert db.query(Notification).count() == 1

    def test_elapsed_65_minutes_is_outside_level_one(
        self, db, reminder_config, make_work_item, test_user, channel, now
    ):
        make_work_item(
            status=WorkItemStatus.IN_PROGRESS,
            assignee_id=test_user.id,
            started_at=now - timedelta(minutes=65),
        )

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.checked == 1
        assert summary.sent == 0

    def test_each_level_sent_once(self, db, reminder_config, started_item, channel, now):
        scheduler = ReminderScheduler(db, channel)
        for minutes in (0, 60, 61, 120, 121):
            scheduler.run(now + timedelta(minutes=minutes))

        levels = sorted(level for (level,) in db.query(ReminderSendRecord.level).all())
        assert levels == [1, 2, 3]

        priorities = {n.priority for n in db.query(Notification).all()}
        assert priorities == {
            NotificationPriority.INFO,
            NotificationPriority.WARNING,
            NotificationPriority.URGENT,
        }

    def test_new_run_gets_new_reminders(self, db, reminder_config, started_item, channel, now):
        ReminderScheduler(db, channel).run(now)

        started_item.started_at = now + timedelta(minutes=30)
        db.commit()
        summary = ReminderScheduler(db, channel).run(now + timedelta(minutes=91))

        assert summary.sent == 1
        assert db.query(ReminderSendRecord).count() == 2

    def test_disabled_config_is_noop(self, db, reminder_config, started_item, channel, now):
        reminder_config.enabled = False
        db.commit()

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.checked == 0
        assert db.query(ReminderSendRecord).count() == 0

    def test_missing_config_is_noop(self, db, started_item, channel, now):
        summary = ReminderScheduler(db, channel).run(now)

        assert summary.checked == 0

    def test_paused_and_completed_items_are_skipped(
        self, db, reminder_config, make_work_item, test_user, channel, now
    ):
        started_at = now - timedelta(minutes=61)
        make_work_item(
            status=WorkItemStatus.IN_PROGRESS,
            assignee_id=test_user.id,
            started_at=started_at,
            sla_paused_at=now - timedelta(minutes=10),
        )
        make_work_item(
            status=WorkItemStatus.IN_PROGRESS,
            assignee_id=test_user.id,
            started_at=started_at,
            completed_at=now,
        )
        make_work_item(status=WorkItemStatus.TODO, assignee_id=test_user.id, started_at=started_at)

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.checked == 0
        assert summary.sent == 0

    def test_unassigned_item_is_skipped(self, db, reminder_config, make_work_item, channel, now):
        make_work_item(status=WorkItemStatus.IN_PROGRESS, started_at=now - timedelta(minutes=61))

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.skipped == 1
        assert db.query(ReminderSendRecord).count() == 0

    def test_failed_dispatch_is_not_recorded_and_retried(
        self, db, reminder_config, started_item, channel, now
    ):
        reminder_config.channels = ["in_app", "telegram"]
        db.commit()
        channel.send.side_effect = ChannelError("telegram", "timeout")

        failed = ReminderScheduler(db, channel).run(now)

        assert failed.failed == 1
        assert db.query(ReminderSendRecord).count() == 0
        assert db.query(Notification).count() == 0

        channel.send.side_effect = None
        retried = ReminderScheduler(db, channel).run(now + timedelta(minutes=1))

        assert retried.sent == 1
        assert db.query(ReminderSendRecord).count() == 1
        channel.send.assert_called_with(
            started_item.assignee_id,
            "reminder.level_1",
            {
                "work_item_id": started_item.id,
                "title": started_item.title,
                "level": 1,
                "elapsed_minutes": 62,
            },
        )

    def test_one_failure_does_not_stop_the_tick(
        self, db, reminder_config, make_work_item, test_user, channel, now
    ):
        reminder_config.channels = ["telegram"]
        db.commit()
        for _ in range(2):
            make_work_item(
                status=WorkItemStatus.IN_PROGRESS,
                assignee_id=test_user.id,
                started_at=now - timedelta(minutes=61),
            )
        channel.send.side_effect = [ChannelError("telegram", "down"), True]

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.failed == 1
        assert summary.sent == 1

    def test_dnd_suppresses_notification_but_records_send(
        self, db, reminder_config, started_item, test_user, channel, now
    ):
        db.add(
            NotificationSetting(
                user_id=test_user.id,
                dnd_enabled=True,
                dnd_start_time=time(11, 0),
                dnd_end_time=time(13, 0),
                dnd_days=[],
                timezone="UTC",
            )
        )
        db.commit()

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.sent == 1
        assert summary.results[0].notified is False
        assert db.query(Notification).count() == 0
        assert db.query(ReminderSendRecord).count() == 1
        actions = {action for (action,) in db.query(AuditLog.action).all()}
        assert audit.REMINDER_SUPPRESSED in actions
        assert audit.NOTIFICATION_SUPPRESSED in actions

    def test_existing_record_counts_as_handled(
        self, db, reminder_config, started_item, channel, now
    ):
        db.add(
            ReminderSendRecord(
                work_item_id=started_item.id,
                level=1,
                run_started_at=started_item.started_at,
                sent_at=now,
            )
        )
        db.commit()

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.sent == 0
        assert summary.skipped == 1
        assert db.query(Notification).count() == 0

    def test_time_budget_defers_remaining_items(
        self, db, reminder_config, started_item, channel, now, monkeypatch
    ):
        from src.config import get_settings

        monkeypatch.setattr(get_settings(), "tick_time_budget_seconds", -1.0)

        summary = ReminderScheduler(db, channel).run(now)

        assert summary.deferred == 1
        assert summary.checked == 0


class TestReminderConfigThresholds:
    @pytest.mark.parametrize(
        "first,second,third",
        [
            (120, 60, 180),
            (60, 180, 120),
            (60, 60, 180),
            (0, 60, 120),
        ],
    )
    def test_misordered_thresholds_are_rejected(self, db, first, second, third):
        db.add(
            ReminderConfig(
                first_reminder_minutes=first,
                second_reminder_minutes=second,
                third_reminder_minutes=third,
            )
        )

        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

        assert db.query(ReminderConfig).count() == 0

    def test_ordered_thresholds_are_stored(self, db):
        db.add(
            ReminderConfig(
                first_reminder_minutes=30,
                second_reminder_minutes=90,
                third_reminder_minutes=240,
            )
        )
        db.commit()

        assert db.query(ReminderConfig).one().thresholds == {1: 30, 2: 90, 3: 240}

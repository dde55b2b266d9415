"""Tests for the notification store."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from study_funnel.domain import BookingData, NotificationStatus, NotificationType
from study_funnel.errors import NotFound, UpstreamUnavailable
from study_funnel.models.notification import Notification
from study_funnel.models.participant import Participant
from study_funnel.services import notifications
from study_funnel.services.survey_format import QuestionCatalog


@pytest.fixture
def load_catalog(survey_details):
    return MagicMock(return_value=QuestionCatalog.from_details(survey_details))


class TestRecordEmailReceived:

    def test_creates_pending_notification(self, db_session):
        n = notifications.record_email_received(db_session, 'a@x.com', 'Hello', 'I want to join')
        assert n.id is not None
        assert n.type == 'email_received'
        assert n.status == 'pending'
        assert n.email_subject == 'Hello'
        assert n.email_body == 'I want to join'

    def test_no_dedup(self, db_session):
        notifications.record_email_received(db_session, 'a@x.com')
        notifications.record_email_received(db_session, 'a@x.com')
        assert db_session.query(Notification).count() == 2

    def test_does_not_create_participant(self, db_session):
        notifications.record_email_received(db_session, 'a@x.com')
        assert db_session.query(Participant).count() == 0


class TestRecordPreScreenCompleted:

    def test_creates_notification_and_participant(self, db_session, load_catalog, make_survey_response):
        n = notifications.record_pre_screen_completed(
            db_session, 'b@y.com', 'Jo', make_survey_response(), load_catalog,
        )
        assert n.type == 'pre_screen_completed'
        assert n.status == 'pending'
        assert n.data_dict == {'name': 'Jo'}

        p = db_session.query(Participant).filter_by(email='b@y.com').one()
        assert p.status == 'pending_review'
        assert p.name == 'Jo Lee'
        assert p.age == 34.0
        assert p.survey_link.startswith('https://www.surveymonkey.com/analyze/')

    def test_second_call_returns_existing_without_writes(self, db_session, load_catalog, make_survey_response):
        first = notifications.record_pre_screen_completed(
            db_session, 'b@y.com', 'Jo', make_survey_response(), load_catalog,
        )
        db_session.commit()
        participant = db_session.query(Participant).filter_by(email='b@y.com').one()
        before = participant.to_dict()

        second = notifications.record_pre_screen_completed(
            db_session, 'b@y.com', 'Someone Else',
            make_survey_response(response_id='resp-2', first='Other', last='Name', age='50'),
            load_catalog,
        )

        assert second.id == first.id
        assert not db_session.dirty
        assert not db_session.new
        assert participant.to_dict() == before
        assert load_catalog.call_count == 1
        assert db_session.query(Notification).filter_by(type='pre_screen_completed').count() == 1

    def test_existing_notification_in_any_status_blocks_new_one(self, db_session, load_catalog, make_survey_response):
        db_session.add(Notification(type='pre_screen_completed', email='b@y.com', status='rejected'))
        db_session.commit()

        n = notifications.record_pre_screen_completed(
            db_session, 'b@y.com', 'Jo', make_survey_response(), load_catalog,
        )
        assert n.status == 'rejected'
        load_catalog.assert_not_called()

    def test_catalog_failure_writes_nothing(self, db_session, make_survey_response):
        failing = MagicMock(side_effect=UpstreamUnavailable('SurveyMonkey request failed'))

        with pytest.raises(UpstreamUnavailable):
            notifications.record_pre_screen_completed(
                db_session, 'b@y.com', 'Jo', make_survey_response(), failing,
            )
        assert not db_session.new


class TestRecordBookingScheduled:

    def test_stores_booking_payload(self, db_session):
        n = notifications.record_booking_scheduled(db_session, 'b@y.com', BookingData(
            booking_time='2025-06-13T13:30:00-04:00', cancel_link='http://c', reschedule_link='http://r',
            extra={'bookingTimeUtc': '2025-06-13T17:30:00+00:00'},
        ))
        assert n.type == 'booking_scheduled'
        assert n.data_dict['cancelLink'] == 'http://c'
        assert n.data_dict['bookingTimeUtc'] == '2025-06-13T17:30:00+00:00'

    def test_rebooking_adds_another_row(self, db_session):
        notifications.record_booking_scheduled(db_session, 'b@y.com', BookingData(booking_time='t1'))
        notifications.record_booking_scheduled(db_session, 'b@y.com', BookingData(booking_time='t2'))
        assert db_session.query(Notification).filter_by(type='booking_scheduled').count() == 2


class TestListAndResolve:

    def test_newest_first_with_approval_date(self, db_session):
        approved_at = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)
        db_session.add(Participant(email='b@y.com', status='eligible', prescreen_approval_date=approved_at))
        db_session.add(Notification(type='email_received', email='a@x.com',
                                    timestamp=datetime(2025, 5, 1, tzinfo=timezone.utc)))
        db_session.add(Notification(type='pre_screen_completed', email='b@y.com',
                                    timestamp=datetime(2025, 5, 2, tzinfo=timezone.utc)))
        db_session.commit()

        rows = notifications.list_notifications(db_session)
        assert [r['email'] for r in rows] == ['b@y.com', 'a@x.com']
        assert rows[0]['prescreenApprovalDate'].startswith('2025-06-01T09:00:00')
        assert 'prescreenApprovalDate' not in rows[1]

    def test_get_notification_missing(self, db_session):
        with pytest.raises(NotFound):
            notifications.get_notification(db_session, 999)

    def test_resolve_sets_status(self, db_session):
        n = notifications.record_email_received(db_session, 'a@x.com')
        notifications.resolve(db_session, n, NotificationStatus.APPROVED)
        assert n.status == 'approved'

    def test_find_by_type(self, db_session):
        notifications.record_email_received(db_session, 'a@x.com')
        assert notifications.find_by_type(db_session, 'a@x.com', NotificationType.EMAIL_RECEIVED) is not None
        assert notifications.find_by_type(db_session, 'a@x.com', NotificationType.BOOKING_SCHEDULED) is None

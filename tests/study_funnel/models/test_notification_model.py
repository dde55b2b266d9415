"""Tests for the Notification and Participant models' serialisation."""
from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from study_funnel.domain import BookingData, NotificationType, PreScreenData
from study_funnel.models.notification import Notification
from study_funnel.models.participant import Participant


class TestNotificationPayload:

    def test_pre_screen_payload_round_trip(self, db_session):
        n = Notification(type=NotificationType.PRE_SCREEN_COMPLETED.value, email='b@y.com')
        n.payload = PreScreenData(name='Jo Lee')
        db_session.add(n)
        db_session.commit()

        stored = db_session.get(Notification, n.id)
        assert stored.status == 'pending'
        assert isinstance(stored.payload, PreScreenData)
        assert stored.payload.name == 'Jo Lee'

    def test_booking_payload_is_typed(self):
        n = Notification(type=NotificationType.BOOKING_SCHEDULED.value, email='b@y.com')
        n.payload = BookingData(booking_time='2025-06-13T13:30:00-04:00', cancel_link='http://c')
        assert n.payload.cancel_link == 'http://c'
        assert n.data_dict['bookingTime'] == '2025-06-13T13:30:00-04:00'

    def test_email_received_has_no_payload(self):
        n = Notification(type=NotificationType.EMAIL_RECEIVED.value, email='a@x.com')
        assert n.payload is None
        assert n.data_dict == {}

    def test_malformed_data_reads_as_empty(self):
        n = Notification(type=NotificationType.PRE_SCREEN_COMPLETED.value, email='a@x.com', data='{oops')
        assert n.data_dict == {}
        assert n.payload.name == ''

    def test_to_dict_shape(self):
        n = Notification(
            id=7, type='email_received', email='a@x.com', status='pending',
            timestamp=datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc),
            email_subject='Hi', email_body='Interested',
        )
        d = n.to_dict(prescreen_approval_date=datetime(2025, 6, 2, tzinfo=timezone.utc))
        assert d == {
            'id': 7,
            'type': 'email_received',
            'email': 'a@x.com',
            'timestamp': '2025-06-01T12:00:00+00:00',
            'status': 'pending',
            'emailSubject': 'Hi',
            'emailBody': 'Interested',
            'data': {},
            'prescreenApprovalDate': '2025-06-02T00:00:00+00:00',
        }

    def test_to_dict_omits_missing_approval_date(self):
        n = Notification(id=1, type='email_received', email='a@x.com', status='pending')
        assert 'prescreenApprovalDate' not in n.to_dict()


class TestParticipantModel:

    def test_defaults(self, db_session):
        p = Participant(email='a@x.com')
        db_session.add(p)
        db_session.commit()
        assert p.status == 'interested'
        assert p.created_at is not None

    def test_to_dict_exposes_survey_payload(self):
        p = Participant(id=1, email='a@x.com', status='pending_review', pre_screen_data='{"id": "r1"}')
        d = p.to_dict()
        assert d['preScreenData'] == {'id': 'r1'}
        assert d['surveyLink'] is None
        assert d['prescreenApprovalDate'] is None

    def test_email_is_unique(self, db_session):
        db_session.add(Participant(email='a@x.com'))
        db_session.commit()
        db_session.add(Participant(email='a@x.com'))
        with pytest.raises(IntegrityError):
            db_session.commit()

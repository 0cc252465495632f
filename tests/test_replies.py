"""
Unit tests for inbound SMS reply handling
"""
from datetime import datetime, timedelta, timezone

import pytest

from textback.models import fields
from textback.services.replies import (
    CANCELLED_REPLY,
    MESSAGE_REPLY,
    NOT_FOUND_REPLY,
    ReplyIntent,
    ReplyService,
    classify_reply,
)

CUSTOMER = "+15550001111"
BUSINESS_NUMBER = "+15552220000"
OWNER = "+15551110000"


def days_from_today(days: int) -> str:
    return (datetime.now(timezone.utc).date() + timedelta(days=days)).isoformat()


@pytest.fixture
def replies(store, sms, settings):
    return ReplyService(store, sms, settings)


@pytest.fixture
def appointment_id(store, business_id):
    return store.add_appointment(**{
        fields.APPOINTMENT_BUSINESS: [business_id],
        fields.CUSTOMER_NAME: "Ana",
        fields.CUSTOMER_PHONE: CUSTOMER,
        fields.APPOINTMENT_DATE: days_from_today(2),
        fields.APPOINTMENT_TIME: "3:00 PM",
        fields.SERVICE_TITLE: "Cleaning",
        fields.STATUS: "Scheduled",
    })


class TestClassifyReply:
    @pytest.mark.parametrize("body", ["CONFIRM", "yes", " Confirmed "])
    def test_confirm_keywords(self, body):
        assert classify_reply(body) == ReplyIntent.CONFIRM

    @pytest.mark.parametrize("body", ["cancel", "CANCELLED", "please cancel my booking"])
    def test_cancel_anywhere_in_text(self, body):
        assert classify_reply(body) == ReplyIntent.CANCEL

    @pytest.mark.parametrize("body", ["yes please", "Can I come at 4?", ""])
    def test_everything_else_is_a_message(self, body):
        assert classify_reply(body) == ReplyIntent.MESSAGE


class TestAppointmentReply:
    def test_confirm_updates_status_and_notifies_owner(self, replies, store, sms, appointment_id):
        reply = replies.handle_appointment_reply(CUSTOMER, BUSINESS_NUMBER, " yes ")

        record = store.appointment_fields(appointment_id)
        assert record[fields.STATUS] == "Confirmed"
        assert record[fields.CUSTOMER_RESPONSE] == "yes"
        assert reply.startswith("Perfect! Your Cleaning appointment is confirmed for")
        owner_messages = sms.messages_to(OWNER)
        assert len(owner_messages) == 1
        assert "Ana CONFIRMED their appointment" in owner_messages[0]
        assert sms.sent[0]["from"] == BUSINESS_NUMBER

    def test_cancel_frees_the_slot(self, replies, store, sms, appointment_id):
        reply = replies.handle_appointment_reply(CUSTOMER, BUSINESS_NUMBER, "I need to cancel")

        assert store.appointment_fields(appointment_id)[fields.STATUS] == "Cancelled"
        assert reply == CANCELLED_REPLY
        owner_messages = sms.messages_to(OWNER)
        assert len(owner_messages) == 1
        assert "CANCELLED" in owner_messages[0]
        assert "slot is free" in owner_messages[0]

    def test_free_text_is_saved_and_forwarded(self, replies, store, sms, appointment_id):
        reply = replies.handle_appointment_reply(CUSTOMER, BUSINESS_NUMBER, "Can I bring my son?")

        record = store.appointment_fields(appointment_id)
        assert record[fields.STATUS] == "Scheduled"
        assert record[fields.CUSTOMER_RESPONSE] == "Can I bring my son?"
        assert reply == MESSAGE_REPLY
        forwarded = sms.messages_to(OWNER)[0]
        assert forwarded.startswith("[APPOINTMENT MESSAGE] Ana")
        assert f"From: {CUSTOMER}" in forwarded
        assert "Re: Cleaning on" in forwarded
        assert "Message: Can I bring my son?" in forwarded

    def test_unknown_number_gets_not_found_and_no_write(self, replies, store, sms, appointment_id):
        reply = replies.handle_appointment_reply("+15559999999", BUSINESS_NUMBER, "CONFIRM")

        assert reply == NOT_FOUND_REPLY
        assert store.writes == []
        assert sms.sent == []

    def test_cancelled_and_past_appointments_are_ignored(self, replies, store, business_id):
        store.add_appointment(**{
            fields.APPOINTMENT_BUSINESS: [business_id],
            fields.CUSTOMER_PHONE: "+15550002222",
            fields.APPOINTMENT_DATE: days_from_today(3),
            fields.STATUS: "Cancelled",
        })
        store.add_appointment(**{
            fields.APPOINTMENT_BUSINESS: [business_id],
            fields.CUSTOMER_PHONE: "+15550002222",
            fields.APPOINTMENT_DATE: days_from_today(-3),
            fields.STATUS: "Scheduled",
        })

        assert replies.handle_appointment_reply("+15550002222", BUSINESS_NUMBER, "YES") == NOT_FOUND_REPLY
        assert store.writes == []

    def test_soonest_appointment_wins(self, replies, store, business_id, appointment_id):
        sooner = store.add_appointment(**{
            fields.APPOINTMENT_BUSINESS: [business_id],
            fields.CUSTOMER_NAME: "Ana",
            fields.CUSTOMER_PHONE: CUSTOMER,
            fields.APPOINTMENT_DATE: days_from_today(1),
            fields.STATUS: "Confirmed",
        })

        replies.handle_appointment_reply(CUSTOMER, BUSINESS_NUMBER, "CANCEL")

        assert store.appointment_fields(sooner)[fields.STATUS] == "Cancelled"
        assert store.appointment_fields(appointment_id)[fields.STATUS] == "Scheduled"

    def test_owner_without_phone_is_skipped(self, replies, store, sms):
        silent_business = store.add_business(**{fields.BUSINESS_NAME: "Quiet Co"})
        store.add_appointment(**{
            fields.APPOINTMENT_BUSINESS: [silent_business],
            fields.CUSTOMER_PHONE: "+15550003333",
            fields.APPOINTMENT_DATE: days_from_today(1),
            fields.STATUS: "Scheduled",
        })

        replies.handle_appointment_reply("+15550003333", "+15557770000", "CONFIRM")

        assert sms.sent == []


class TestForwardedMessage:
    def test_forwards_to_owner(self, replies, sms, business_id):
        reply = replies.handle_forwarded_message(CUSTOMER, BUSINESS_NUMBER, "Are you open Sunday?")

        assert reply == "Thanks for your message! Bright Smiles Dental will respond soon."
        forwarded = sms.messages_to(OWNER)[0]
        assert forwarded.startswith("[CUSTOMER MESSAGE] Bright Smiles Dental")
        assert "Message: Are you open Sunday?" in forwarded

    def test_unknown_business_returns_none(self, replies, sms):
        assert replies.handle_forwarded_message(CUSTOMER, "+15550000001", "hello") is None
        assert sms.sent == []

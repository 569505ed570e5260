from datetime import date, datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

from django.core import mail
from django.test import TestCase, override_settings

from agency_backend.exceptions import NotificationDeliveryError
from insurance_core.models import Policy, PolicyReminder
from insurance_core.services import reminder_service
from insurance_core.services.notifications import (
    AGENT_EXPIRY_TEMPLATE,
    CUSTOMER_EXPIRY_TEMPLATE,
    EmailNotificationSink,
    RecordingNotificationSink,
)
from insurance_core.services.reminder_service import (
    create_manual_reminder,
    days_until_expiry,
    run_expiry_reminder_sweep,
    run_reminder_tick,
)
from insurance_core.tests.base import AgencyFixturesMixin

NOW = datetime(2026, 3, 1, 10, 0, tzinfo=dt_timezone.utc)


class FailingCustomerSink(RecordingNotificationSink):
    def __init__(self, failing_address):
        super().__init__()
        self.failing_address = failing_address

    def send(self, *, company, to, subject, template_name, context):
        if to == self.failing_address:
            raise NotificationDeliveryError("mailbox unavailable", to=to)
        super().send(company=company, to=to, subject=subject, template_name=template_name, context=context)


@override_settings(TIME_ZONE="UTC", POLICY_REMINDER_WINDOW_DAYS=30, POLICY_REMINDER_CLAIM_TIMEOUT_SECONDS=900)
class ExpiryReminderSweepTests(AgencyFixturesMixin, TestCase):
    def setUp(self):
        self.company = self.create_agency("acme")
        self.agent = self.create_member(self.company, "agent", email="agent@acme.test")
        self.partner, self.product, self.customer = self.create_catalog(self.company)
        self.policy = self._policy(end_date=date(2026, 3, 15), number="POL-2026-000001")

    def _policy(self, *, end_date, number, status=Policy.Status.ACTIVE, company=None, agent=None):
        company = company or self.company
        if company == self.company:
            partner, product, customer = self.partner, self.product, self.customer
        else:
            partner, product, customer = self.create_catalog(company)
        return self.create_policy(
            company=company,
            agent=agent or self.agent,
            customer=customer,
            product=product,
            partner=partner,
            status=status,
            start_date=date(2025, 3, 15),
            end_date=end_date,
            number=number,
        )

    def test_days_until_expiry_rounds_up(self):
        self.assertEqual(days_until_expiry(date(2026, 3, 15), NOW), 14)
        self.assertEqual(days_until_expiry(date(2026, 3, 2), NOW), 1)
        self.assertEqual(days_until_expiry(date(2026, 3, 1), NOW), 0)

    def test_sweep_sends_one_customer_and_one_agent_notification(self):
        sink = RecordingNotificationSink()

        result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.reminded, 1)
        self.assertEqual(result.customer_notifications, 1)
        self.assertEqual(result.agent_notifications, 1)
        self.assertEqual(len(sink.messages), 2)
        customer_message, agent_message = sink.messages
        self.assertEqual(customer_message["to"], "jane.doe@example.com")
        self.assertEqual(customer_message["template_name"], CUSTOMER_EXPIRY_TEMPLATE)
        self.assertEqual(customer_message["subject"], "Policy Expiry Reminder - POL-2026-000001")
        self.assertEqual(agent_message["to"], "agent@acme.test")
        self.assertEqual(agent_message["template_name"], AGENT_EXPIRY_TEMPLATE)
        self.assertEqual(agent_message["context"]["days_until_expiry"], 14)
        self.assertEqual(agent_message["context"]["customer_email"], "jane.doe@example.com")

        reminder = PolicyReminder.all_objects.get(policy=self.policy)
        self.assertEqual(reminder.kind, PolicyReminder.Kind.AUTO)
        self.assertTrue(reminder.is_sent)
        self.assertEqual(reminder.sent_at, NOW)
        self.assertEqual(reminder.expiry_date, date(2026, 3, 15))
        self.assertEqual(reminder.reminder_date, date(2026, 2, 13))
        self.assertTrue(reminder.customer_notified)
        self.assertTrue(reminder.agent_notified)

    def test_second_sweep_does_not_notify_again(self):
        sink = RecordingNotificationSink()
        run_expiry_reminder_sweep(sink=sink, now=NOW)

        second = run_expiry_reminder_sweep(sink=sink, now=NOW + timedelta(days=1))

        self.assertEqual(second.scanned, 0)
        self.assertEqual(second.reminded, 0)
        self.assertEqual(len(sink.messages), 2)
        self.assertEqual(PolicyReminder.all_objects.filter(policy=self.policy).count(), 1)

    def test_policy_ending_today_is_not_reminded(self):
        self.policy.end_date = date(2026, 3, 1)
        self.policy.save(update_fields=["end_date"])
        sink = RecordingNotificationSink()

        result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.scanned, 0)
        self.assertEqual(sink.messages, [])
        self.assertFalse(PolicyReminder.all_objects.exists())

    def test_reminder_inserted_by_concurrent_sweep_is_skipped(self):
        PolicyReminder.all_objects.create(
            policy=self.policy,
            kind=PolicyReminder.Kind.AUTO,
            reminder_date=date(2026, 2, 13),
            expiry_date=date(2026, 3, 15),
            claimed_at=NOW,
        )
        sink = RecordingNotificationSink()

        # The lookup misses the row, so the insert hits the unique constraint.
        with patch.object(reminder_service, "_current_auto_reminder", return_value=None):
            result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.skipped, 1)
        self.assertEqual(result.failed, 0)
        self.assertEqual(sink.messages, [])
        self.assertEqual(PolicyReminder.all_objects.filter(policy=self.policy).count(), 1)

    def test_only_active_policies_inside_the_window_are_selected(self):
        self._policy(end_date=date(2026, 5, 1), number="POL-2026-000002")
        self._policy(end_date=date(2026, 3, 10), number="POL-2026-000003", status=Policy.Status.DRAFT)
        self._policy(end_date=date(2026, 2, 27), number="POL-2026-000004")
        inactive_agency = self.create_agency("dormant")
        inactive_agency.is_active = False
        inactive_agency.save(update_fields=["is_active"])
        dormant_agent = self.create_member(inactive_agency, "dormant-agent", email="d@dormant.test")
        self._policy(
            end_date=date(2026, 3, 10),
            number="POL-2026-000005",
            company=inactive_agency,
            agent=dormant_agent,
        )

        result = run_expiry_reminder_sweep(sink=RecordingNotificationSink(), now=NOW)

        self.assertEqual(result.scanned, 1)
        self.assertEqual(list(PolicyReminder.all_objects.values_list("policy_id", flat=True)), [self.policy.id])

    def test_failed_customer_notification_still_marks_reminder_sent(self):
        sink = FailingCustomerSink("jane.doe@example.com")

        result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.reminded, 1)
        self.assertEqual(result.notification_failures, 1)
        self.assertEqual(result.agent_notifications, 1)
        reminder = PolicyReminder.all_objects.get(policy=self.policy)
        self.assertTrue(reminder.is_sent)
        self.assertFalse(reminder.customer_notified)
        self.assertTrue(reminder.agent_notified)
        self.assertIn("mailbox unavailable", reminder.last_error)

    def test_customer_without_email_only_notifies_agent(self):
        self.customer.email = ""
        self.customer.save(update_fields=["email"])
        sink = RecordingNotificationSink()

        run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual([message["to"] for message in sink.messages], ["agent@acme.test"])

    def test_failure_on_one_policy_does_not_stop_the_batch(self):
        broken = self._policy(end_date=date(2026, 3, 5), number="POL-2026-000009")
        original_claim = reminder_service._claim_reminder

        def flaky_claim(*, policy_id, **kwargs):
            if policy_id == broken.id:
                raise RuntimeError("db hiccup")
            return original_claim(policy_id=policy_id, **kwargs)

        with patch.object(reminder_service, "_claim_reminder", side_effect=flaky_claim):
            result = run_expiry_reminder_sweep(sink=RecordingNotificationSink(), now=NOW)

        self.assertEqual(result.failed, 1)
        self.assertEqual(result.reminded, 1)
        self.assertTrue(PolicyReminder.all_objects.get(policy=self.policy).is_sent)

    def test_fresh_claim_by_another_sweep_is_skipped(self):
        PolicyReminder.all_objects.create(
            policy=self.policy,
            kind=PolicyReminder.Kind.AUTO,
            reminder_date=date(2026, 2, 13),
            expiry_date=date(2026, 3, 15),
            claimed_at=NOW - timedelta(seconds=60),
        )
        sink = RecordingNotificationSink()

        result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.skipped, 1)
        self.assertEqual(sink.messages, [])

    def test_stale_claim_is_taken_over(self):
        PolicyReminder.all_objects.create(
            policy=self.policy,
            kind=PolicyReminder.Kind.AUTO,
            reminder_date=date(2026, 2, 13),
            expiry_date=date(2026, 3, 15),
            claimed_at=NOW - timedelta(hours=1),
        )
        sink = RecordingNotificationSink()

        result = run_expiry_reminder_sweep(sink=sink, now=NOW)

        self.assertEqual(result.reminded, 1)
        self.assertEqual(len(sink.messages), 2)
        self.assertEqual(PolicyReminder.all_objects.filter(policy=self.policy).count(), 1)

    def test_manual_reminder_does_not_block_automatic_one(self):
        create_manual_reminder(company=self.company, policy_id=self.policy.id, reminder_date=date(2026, 2, 20))

        result = run_expiry_reminder_sweep(sink=RecordingNotificationSink(), now=NOW)

        self.assertEqual(result.reminded, 1)
        manual = PolicyReminder.all_objects.get(policy=self.policy, kind=PolicyReminder.Kind.MANUAL)
        self.assertFalse(manual.is_sent)

    def test_renewed_end_date_gets_a_new_reminder(self):
        run_expiry_reminder_sweep(sink=RecordingNotificationSink(), now=NOW)
        Policy.all_objects.filter(id=self.policy.id).update(end_date=date(2026, 3, 25))

        result = run_expiry_reminder_sweep(sink=RecordingNotificationSink(), now=NOW)

        self.assertEqual(result.reminded, 1)
        self.assertEqual(PolicyReminder.all_objects.filter(policy=self.policy).count(), 2)

    @override_settings(
        EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
        DEFAULT_FROM_EMAIL="no-reply@agency.test",
    )
    def test_email_sink_delivers_rendered_templates(self):
        run_expiry_reminder_sweep(sink=EmailNotificationSink(), now=NOW)

        self.assertEqual(len(mail.outbox), 2)
        subjects = sorted(message.subject for message in mail.outbox)
        self.assertEqual(
            subjects,
            ["Policy Expiring Soon - POL-2026-000001", "Policy Expiry Reminder - POL-2026-000001"],
        )
        agent_mail = next(message for message in mail.outbox if message.to == ["agent@acme.test"])
        self.assertIn("14 days", agent_mail.body)
        self.assertIn("jane.doe@example.com", agent_mail.body)

    def test_daily_tick_expires_lapsed_policies_before_sweeping(self):
        lapsed = self._policy(end_date=date(2026, 2, 20), number="POL-2026-000010")

        tick = run_reminder_tick(mode="daily", sink=RecordingNotificationSink(), companies=[self.company], now=NOW)

        self.assertEqual(tick.agencies, 1)
        self.assertEqual(tick.expired_policies, 1)
        self.assertEqual(tick.sweep.reminded, 1)
        lapsed.refresh_from_db()
        self.assertEqual(lapsed.status, Policy.Status.EXPIRED)

    def test_weekly_tick_leaves_lapsed_policies_alone(self):
        lapsed = self._policy(end_date=date(2026, 2, 20), number="POL-2026-000010")

        tick = run_reminder_tick(mode="weekly", sink=RecordingNotificationSink(), companies=[self.company], now=NOW)

        self.assertEqual(tick.expired_policies, 0)
        lapsed.refresh_from_db()
        self.assertEqual(lapsed.status, Policy.Status.ACTIVE)

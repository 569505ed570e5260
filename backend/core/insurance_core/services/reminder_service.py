from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from customers.models import CompanyMembership
from insurance_core.models import Policy, PolicyReminder
from insurance_core.selectors.policy_selector import expiring_policies, get_policy
from insurance_core.services.notifications import (
    AGENT_EXPIRY_TEMPLATE,
    CUSTOMER_EXPIRY_TEMPLATE,
    NotificationSink,
)
from insurance_core.services.policy_service import expire_due_policies
from tenancy.context import tenant_context

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


@dataclass
class ReminderSweepResult:
    scanned: int = 0
    reminded: int = 0
    skipped: int = 0
    failed: int = 0
    customer_notifications: int = 0
    agent_notifications: int = 0
    notification_failures: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def reminder_window_days() -> int:
    return int(getattr(settings, "POLICY_REMINDER_WINDOW_DAYS", 30))


def days_until_expiry(end_date: date, now: datetime) -> int:
    """Whole days left until coverage ends at the start of ``end_date`` (local time), rounded up."""

    coverage_end = timezone.make_aware(datetime.combine(end_date, time.min))
    remaining = (coverage_end - now).total_seconds() / _SECONDS_PER_DAY
    return max(0, math.ceil(remaining))


def _current_auto_reminder(policy: Policy):
    return (
        PolicyReminder.all_objects.select_for_update()
        .filter(policy=policy, kind=PolicyReminder.Kind.AUTO, expiry_date=policy.end_date)
        .first()
    )


def _claim_reminder(*, policy_id: int, now: datetime, window_days: int):
    """Lock the policy and take ownership of its automatic reminder for the current end date.

    Returns ``(policy, reminder)`` or ``None`` when another sweep already sent
    or is sending it. An unsent reminder whose claim is older than
    ``POLICY_REMINDER_CLAIM_TIMEOUT_SECONDS`` is taken over.
    """

    claim_timeout = timedelta(
        seconds=int(getattr(settings, "POLICY_REMINDER_CLAIM_TIMEOUT_SECONDS", 900))
    )
    with transaction.atomic():
        policy = (
            Policy.all_objects.select_for_update()
            .filter(id=policy_id, status=Policy.Status.ACTIVE)
            .first()
        )
        if policy is None:
            return None

        reminder = _current_auto_reminder(policy)
        if reminder is None:
            try:
                with transaction.atomic():
                    reminder = PolicyReminder.all_objects.create(
                        company_id=policy.company_id,
                        policy=policy,
                        kind=PolicyReminder.Kind.AUTO,
                        reminder_date=policy.end_date - timedelta(days=window_days),
                        expiry_date=policy.end_date,
                        claimed_at=now,
                    )
            except IntegrityError:
                return None
            return policy, reminder

        if reminder.is_sent:
            return None
        if reminder.claimed_at is not None and reminder.claimed_at > now - claim_timeout:
            return None

        reminder.claimed_at = now
        reminder.save(update_fields=["claimed_at", "updated_at"])
        return policy, reminder


def _agent_phone(policy: Policy) -> str:
    return (
        CompanyMembership.objects.filter(company_id=policy.company_id, user_id=policy.sales_agent_id)
        .values_list("phone", flat=True)
        .first()
        or ""
    )


def _notification_context(policy: Policy, now: datetime) -> dict:
    agent = policy.sales_agent
    customer = policy.customer
    return {
        "agency_name": policy.company.name,
        "policy_number": policy.policy_number,
        "product_name": policy.product.name,
        "expiry_date": policy.end_date,
        "days_until_expiry": days_until_expiry(policy.end_date, now),
        "customer_name": customer.display_name,
        "customer_email": customer.email,
        "customer_phone": customer.phone,
        "agent_name": agent.get_full_name() or agent.get_username(),
        "agent_email": agent.email,
        "agent_phone": _agent_phone(policy),
    }


def _dispatch(*, sink: NotificationSink, policy: Policy, reminder: PolicyReminder, now, result):
    context = _notification_context(policy, now)
    deliveries = []
    if policy.customer.email:
        deliveries.append(
            (
                "customer_notified",
                policy.customer.email,
                f"Policy Expiry Reminder - {policy.policy_number}",
                CUSTOMER_EXPIRY_TEMPLATE,
            )
        )
    if policy.sales_agent.email:
        deliveries.append(
            (
                "agent_notified",
                policy.sales_agent.email,
                f"Policy Expiring Soon - {policy.policy_number}",
                AGENT_EXPIRY_TEMPLATE,
            )
        )

    errors = []
    for flag, recipient, subject, template_name in deliveries:
        try:
            sink.send(
                company=policy.company,
                to=recipient,
                subject=subject,
                template_name=template_name,
                context=context,
            )
        except Exception as exc:
            result.notification_failures += 1
            errors.append(f"{flag.split('_')[0]}: {exc}")
            logger.warning(
                "expiry notification failed",
                exc_info=True,
                extra={
                    "company_id": policy.company_id,
                    "policy_id": policy.id,
                    "reminder_id": reminder.id,
                    "recipient": recipient,
                },
            )
            continue

        setattr(reminder, flag, True)
        if flag == "customer_notified":
            result.customer_notifications += 1
        else:
            result.agent_notifications += 1

    reminder.last_error = "\n".join(errors)


def _mark_sent(reminder: PolicyReminder, now: datetime) -> None:
    reminder.is_sent = True
    reminder.sent_at = now
    reminder.save(
        update_fields=[
            "is_sent",
            "sent_at",
            "customer_notified",
            "agent_notified",
            "last_error",
            "updated_at",
        ]
    )


def run_expiry_reminder_sweep(
    *,
    sink: NotificationSink,
    now: datetime | None = None,
    company=None,
    window_days: int | None = None,
) -> ReminderSweepResult:
    """Send one customer and one agent reminder per ACTIVE policy expiring inside the window.

    Each policy is processed on its own: a failure is logged and counted, and
    the sweep moves on. A reminder is marked sent even when some of its
    notifications failed.
    """

    now = now or timezone.now()
    window_days = reminder_window_days() if window_days is None else window_days
    today = timezone.localdate(now)
    result = ReminderSweepResult()

    candidate_ids = list(
        expiring_policies(today=today, window_days=window_days, company=company).values_list(
            "id",
            flat=True,
        )
    )
    result.scanned = len(candidate_ids)

    for policy_id in candidate_ids:
        try:
            claimed = _claim_reminder(policy_id=policy_id, now=now, window_days=window_days)
            if claimed is None:
                result.skipped += 1
                continue

            policy, reminder = claimed
            policy = Policy.all_objects.select_related(
                "company",
                "customer",
                "product",
                "sales_agent",
            ).get(id=policy.id)
            _dispatch(sink=sink, policy=policy, reminder=reminder, now=now, result=result)
            _mark_sent(reminder, now)
            result.reminded += 1
        except Exception:
            result.failed += 1
            logger.exception(
                "expiry reminder failed for policy",
                extra={"policy_id": policy_id, "company_id": getattr(company, "id", None)},
            )

    logger.info(
        "expiry reminder sweep finished",
        extra={"company_id": getattr(company, "id", None), "window_days": window_days, **result.as_dict()},
    )
    return result


def create_manual_reminder(*, company, policy_id, reminder_date: date) -> PolicyReminder:
    policy = get_policy(company=company, policy_id=policy_id)
    reminder = PolicyReminder.all_objects.create(
        company=company,
        policy=policy,
        kind=PolicyReminder.Kind.MANUAL,
        reminder_date=reminder_date,
        expiry_date=policy.end_date,
    )
    logger.info(
        "manual reminder created",
        extra={"company_id": company.id, "policy_id": policy.id, "reminder_id": reminder.id},
    )
    return reminder


@dataclass
class ReminderTickResult:
    mode: str
    agencies: int = 0
    failed_agencies: int = 0
    expired_policies: int = 0
    sweep: ReminderSweepResult | None = None


def run_reminder_tick(*, mode: str, sink: NotificationSink, companies, now: datetime | None = None):
    """One scheduled tick over ``companies``.

    Daily ticks first move lapsed ACTIVE policies to EXPIRED. Every agency is
    handled on its own so one failing agency does not stop the others.
    """

    now = now or timezone.now()
    tick = ReminderTickResult(mode=mode, sweep=ReminderSweepResult())
    for company in companies:
        tick.agencies += 1
        try:
            with tenant_context(company):
                if mode == "daily":
                    tick.expired_policies += expire_due_policies(
                        company=company,
                        today=timezone.localdate(now),
                    )
                agency_result = run_expiry_reminder_sweep(sink=sink, now=now, company=company)
        except Exception:
            tick.failed_agencies += 1
            logger.exception(
                "reminder tick failed for agency",
                extra={"company_id": company.id, "mode": mode},
            )
            continue

        for key, value in agency_result.as_dict().items():
            setattr(tick.sweep, key, getattr(tick.sweep, key) + value)
    return tick

from __future__ import annotations

from datetime import date, timedelta

from django.db.models import Exists, OuterRef, Q

from agency_backend.exceptions import NotFoundError
from insurance_core.models import Policy, PolicyReminder


def _base_queryset(company):
    return Policy.all_objects.filter(company=company).select_related(
        "customer",
        "product",
        "partner",
        "sales_agent",
    )


def list_policies(
    *,
    company,
    status: str | None = None,
    customer_id: int | None = None,
    product_id: int | None = None,
    partner_id: int | None = None,
    sales_agent_id: int | None = None,
    search: str | None = None,
):
    qs = _base_queryset(company)
    if status:
        qs = qs.filter(status=str(status).strip().upper())
    if customer_id:
        qs = qs.filter(customer_id=customer_id)
    if product_id:
        qs = qs.filter(product_id=product_id)
    if partner_id:
        qs = qs.filter(partner_id=partner_id)
    if sales_agent_id:
        qs = qs.filter(sales_agent_id=sales_agent_id)
    if search:
        search = str(search).strip()
        if search:
            qs = qs.filter(Q(policy_number__icontains=search) | Q(notes__icontains=search))
    return qs.order_by("-created_at", "-id")


def get_policy(*, company, policy_id) -> Policy:
    policy = _base_queryset(company).filter(id=policy_id).first()
    if policy is None:
        raise NotFoundError("Policy not found.", policy_id=policy_id)
    return policy


def expiring_policies(
    *,
    today: date,
    window_days: int,
    company=None,
    exclude_reminded: bool = True,
):
    """ACTIVE policies of active agencies ending within ``(today, today + window_days]``.

    With ``exclude_reminded`` a policy drops out once a reminder has been sent
    for its current end date.
    """

    qs = Policy.all_objects.filter(
        status=Policy.Status.ACTIVE,
        end_date__gt=today,
        end_date__lte=today + timedelta(days=window_days),
        company__is_active=True,
    )
    if company is not None:
        qs = qs.filter(company=company)
    if exclude_reminded:
        sent_for_current_end = PolicyReminder.all_objects.filter(
            policy_id=OuterRef("pk"),
            expiry_date=OuterRef("end_date"),
            is_sent=True,
        )
        qs = qs.exclude(Exists(sent_for_current_end))
    return qs.order_by("end_date", "id")


def list_reminders(*, company, policy_id):
    policy = get_policy(company=company, policy_id=policy_id)
    return PolicyReminder.all_objects.filter(company=company, policy=policy).order_by(
        "-reminder_date",
        "-id",
    )

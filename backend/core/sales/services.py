from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from dateutil.relativedelta import relativedelta
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, DateField, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from agency_backend.exceptions import (
    DependencyError,
    DomainValidationError,
    DuplicateError,
    NotFoundError,
)
from customers.models import CompanyMembership
from insurance_core.models import Policy
from operational.models import Customer
from sales.models import Sale

logger = logging.getLogger(__name__)

_ZERO = Decimal("0.00")
_CENT = Decimal("0.01")
TOP_AGENTS_LIMIT = 5
TREND_MONTHS = 12


def _as_decimal(value, *, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise DomainValidationError(f"{field} must be a decimal number.", field=field)


def _validated_amounts(amount, commission) -> tuple[Decimal, Decimal]:
    amount = _as_decimal(amount, field="amount")
    if amount <= 0:
        raise DomainValidationError("Amount must be greater than 0.", field="amount")

    commission = _ZERO if commission is None else _as_decimal(commission, field="commission")
    if commission < 0:
        raise DomainValidationError("Commission cannot be negative.", field="commission")
    return amount, commission


def _resolve_agent(*, company, agent_id):
    is_member = CompanyMembership.objects.filter(
        company=company,
        user_id=agent_id,
        is_active=True,
    ).exists()
    if not is_member:
        return None
    return get_user_model().objects.filter(id=agent_id, is_active=True).first()


def _policy_already_sold(policy) -> bool:
    return Sale.all_objects.filter(policy=policy).exists()


def record_sale(*, company, policy_id, customer_id, agent_id, amount, commission=None) -> Sale:
    """Record the one sale allowed for ``policy_id``.

    The policy row stays locked between the duplicate check and the insert;
    the one-to-one constraint on ``Sale.policy`` settles any remaining race.
    """

    amount, commission = _validated_amounts(amount, commission)

    customer = Customer.all_objects.filter(company=company, id=customer_id).first()
    if customer is None:
        raise DependencyError("Invalid customer.", field="customer_id")

    agent = _resolve_agent(company=company, agent_id=agent_id)
    if agent is None:
        raise DependencyError("Invalid sales agent.", field="sales_agent_id")

    try:
        with transaction.atomic():
            policy = (
                Policy.all_objects.select_for_update()
                .filter(company=company, id=policy_id)
                .first()
            )
            if policy is None or policy.status == Policy.Status.CANCELLED:
                raise DependencyError("Invalid policy.", field="policy_id")

            if _policy_already_sold(policy):
                raise DuplicateError("Sale already exists for this policy.", policy_id=policy.id)

            sale = Sale.all_objects.create(
                company=company,
                policy=policy,
                customer=customer,
                sales_agent=agent,
                amount=amount,
                commission=commission,
            )
    except IntegrityError:
        raise DuplicateError("Sale already exists for this policy.", policy_id=policy_id)

    logger.info(
        "sale recorded",
        extra={
            "company_id": company.id,
            "sale_id": sale.id,
            "policy_id": sale.policy_id,
            "agent_id": agent.id,
        },
    )
    return sale


def correct_sale(*, company, sale_id, amount, commission=None) -> Sale:
    """Amount/commission correction; an omitted commission keeps the stored one."""

    with transaction.atomic():
        sale = Sale.all_objects.select_for_update().filter(company=company, id=sale_id).first()
        if sale is None:
            raise NotFoundError("Sale not found.", sale_id=sale_id)

        amount, commission = _validated_amounts(
            amount,
            sale.commission if commission is None else commission,
        )
        sale.amount = amount
        sale.commission = commission
        sale.save(update_fields=["amount", "commission", "updated_at"])

    logger.info(
        "sale corrected",
        extra={"company_id": company.id, "sale_id": sale.id},
    )
    return sale


def _money(value) -> str:
    return str(Decimal(value or 0).quantize(_CENT, rounding=ROUND_HALF_UP))


def _month_start(day: date, months_back: int) -> date:
    return day.replace(day=1) - relativedelta(months=months_back)


def sale_stats(*, company, today: date | None = None) -> dict:
    """Aggregates derived from the agency's stored sales. Nothing here is persisted."""

    today = today or timezone.localdate()
    sales = Sale.all_objects.filter(company=company)

    totals = sales.aggregate(
        total_sales=Sum("amount"),
        total_commission=Sum("commission"),
        total_policies=Count("id"),
        average_sale=Avg("amount"),
    )

    top_agents = [
        {
            "agent_id": row["sales_agent_id"],
            "username": row["sales_agent__username"],
            "full_name": " ".join(
                part for part in (row["sales_agent__first_name"], row["sales_agent__last_name"]) if part
            )
            or row["sales_agent__username"],
            "sales_count": row["sales_count"],
            "total_amount": _money(row["total_amount"]),
            "total_commission": _money(row["total_commission"]),
        }
        for row in sales.values(
            "sales_agent_id",
            "sales_agent__username",
            "sales_agent__first_name",
            "sales_agent__last_name",
        )
        .annotate(
            sales_count=Count("id"),
            total_amount=Sum("amount"),
            total_commission=Sum("commission"),
        )
        .order_by("-total_amount", "sales_agent_id")[:TOP_AGENTS_LIMIT]
    ]

    category_breakdown = [
        {
            "category": row["policy__product__category"],
            "sales_count": row["sales_count"],
            "total_amount": _money(row["total_amount"]),
        }
        for row in sales.values("policy__product__category")
        .annotate(sales_count=Count("id"), total_amount=Sum("amount"))
        .order_by("-total_amount", "policy__product__category")
    ]

    window_start = _month_start(today, TREND_MONTHS - 1)
    monthly_rows = {
        row["month"]: row
        for row in sales.filter(sale_date__date__gte=window_start)
        .annotate(month=TruncMonth("sale_date", output_field=DateField()))
        .values("month")
        .annotate(sales_count=Count("id"), total_amount=Sum("amount"), total_commission=Sum("commission"))
        .order_by("month")
    }
    monthly_trend = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        month = _month_start(today, offset)
        row = monthly_rows.get(month, {})
        monthly_trend.append(
            {
                "month": month.strftime("%Y-%m"),
                "sales_count": row.get("sales_count", 0),
                "total_amount": _money(row.get("total_amount")),
                "total_commission": _money(row.get("total_commission")),
            }
        )

    return {
        "total_sales": _money(totals["total_sales"]),
        "total_commission": _money(totals["total_commission"]),
        "total_policies": totals["total_policies"],
        "average_sale": _money(totals["average_sale"]),
        "top_agents": top_agents,
        "category_breakdown": category_breakdown,
        "monthly_trend": monthly_trend,
    }

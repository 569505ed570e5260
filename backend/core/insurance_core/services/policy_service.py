from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from agency_backend.exceptions import (
    DependencyError,
    DomainValidationError,
    DuplicateError,
    InvalidTransitionError,
    NotFoundError,
)
from insurance_core.models import InsuranceProduct, Partner, Policy, PolicySequence
from operational.models import Customer

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_HUNDRED = Decimal("100")
_NUMBER_ALLOCATION_ATTEMPTS = 3

UPDATABLE_FIELDS = ("start_date", "end_date", "premium", "commission", "notes", "documents")

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    Policy.Status.DRAFT: frozenset((Policy.Status.PENDING, Policy.Status.ACTIVE, Policy.Status.CANCELLED)),
    Policy.Status.PENDING: frozenset((Policy.Status.ACTIVE, Policy.Status.CANCELLED)),
    Policy.Status.ACTIVE: frozenset((Policy.Status.CANCELLED, Policy.Status.EXPIRED)),
    Policy.Status.CANCELLED: frozenset(),
    Policy.Status.EXPIRED: frozenset(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def _sources_for(to_status: str) -> list[str]:
    return [source for source, targets in ALLOWED_TRANSITIONS.items() if to_status in targets]


def _as_decimal(value, *, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise DomainValidationError(f"{field} must be a decimal number.", field=field)


def compute_commission(premium: Decimal, commission_rate: Decimal) -> Decimal:
    """Commission earned on ``premium`` at ``commission_rate`` percent, rounded half-up to cents."""

    return (Decimal(premium) * Decimal(commission_rate) / _HUNDRED).quantize(
        _CENT,
        rounding=ROUND_HALF_UP,
    )


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date <= start_date:
        raise DomainValidationError("End date must be after start date.", field="end_date")


def _resolve_dependencies(*, company, customer_id, product_id, partner_id):
    customer = Customer.all_objects.filter(company=company, id=customer_id, is_active=True).first()
    if customer is None:
        raise DependencyError("Invalid customer.", field="customer_id")

    product = InsuranceProduct.all_objects.filter(company=company, id=product_id, is_active=True).first()
    if product is None:
        raise DependencyError("Product not found.", field="product_id")

    partner = Partner.all_objects.filter(company=company, id=partner_id, is_active=True).first()
    if partner is None:
        raise DependencyError("Invalid partner.", field="partner_id")

    return customer, product, partner


def allocate_policy_number(*, company, year: int | None = None) -> str:
    """Next ``<prefix>-<year>-<sequence>`` number for the agency.

    Must run inside the transaction that inserts the policy so a rollback
    also releases the number.
    """

    year = year or timezone.localdate().year
    sequence, _created = PolicySequence.all_objects.select_for_update().get_or_create(
        company=company,
        year=year,
    )
    PolicySequence.all_objects.filter(pk=sequence.pk).update(last_value=F("last_value") + 1)
    sequence.refresh_from_db(fields=["last_value"])
    prefix = getattr(settings, "POLICY_NUMBER_PREFIX", "POL")
    return f"{prefix}-{year}-{sequence.last_value:06d}"


def _skip_taken_policy_numbers(*, company, year: int) -> None:
    """Move the agency counter past numbers already stored for ``year``.

    Runs outside the savepoint that failed, so the new counter value survives.
    """

    prefix = f"{getattr(settings, 'POLICY_NUMBER_PREFIX', 'POL')}-{year}-"
    taken = [
        int(number[len(prefix):])
        for number in Policy.all_objects.filter(
            company=company,
            policy_number__startswith=prefix,
        ).values_list("policy_number", flat=True)
        if number[len(prefix):].isdigit()
    ]
    highest = max(taken, default=0)

    with transaction.atomic():
        sequence, _created = PolicySequence.all_objects.select_for_update().get_or_create(
            company=company,
            year=year,
        )
        if sequence.last_value < highest:
            sequence.last_value = highest
            sequence.save(update_fields=["last_value", "updated_at"])


def create_policy(
    *,
    company,
    agent,
    customer_id: int,
    product_id: int,
    partner_id: int,
    start_date: date,
    end_date: date,
    premium,
    commission=None,
    notes: str = "",
    documents=(),
) -> Policy:
    """Create a DRAFT policy sold by ``agent``.

    Commission defaults to the product's rate applied to the premium; an
    explicit value, zero included, is stored as given.
    """

    premium = _as_decimal(premium, field="premium")
    if premium <= 0:
        raise DomainValidationError("Premium must be greater than 0.", field="premium")
    _validate_dates(start_date, end_date)
    if commission is not None:
        commission = _as_decimal(commission, field="commission")
        if commission < 0:
            raise DomainValidationError("Commission cannot be negative.", field="commission")

    customer, product, partner = _resolve_dependencies(
        company=company,
        customer_id=customer_id,
        product_id=product_id,
        partner_id=partner_id,
    )
    if commission is None:
        commission = compute_commission(premium, product.commission_rate)

    year = timezone.localdate().year
    for attempt in range(1, _NUMBER_ALLOCATION_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                policy = Policy(
                    company=company,
                    policy_number=allocate_policy_number(company=company, year=year),
                    customer=customer,
                    product=product,
                    partner=partner,
                    sales_agent=agent,
                    status=Policy.Status.DRAFT,
                    start_date=start_date,
                    end_date=end_date,
                    premium=premium,
                    commission=commission,
                    notes=notes or "",
                    documents=list(documents or []),
                )
                policy.save()
        except IntegrityError:
            logger.warning(
                "policy number collision",
                extra={"company_id": company.id, "attempt": attempt},
            )
            _skip_taken_policy_numbers(company=company, year=year)
            continue

        logger.info(
            "policy created",
            extra={
                "company_id": company.id,
                "policy_id": policy.id,
                "policy_number": policy.policy_number,
                "agent_id": getattr(agent, "id", None),
            },
        )
        return policy

    raise DuplicateError("Could not allocate a unique policy number.")


def update_policy(*, company, policy_id, data: dict) -> Policy:
    """Apply allowed field changes to a non-terminal policy.

    Status is never written here; it only moves through the transition
    functions below.
    """

    changes = {key: value for key, value in data.items() if key in UPDATABLE_FIELDS}

    if "premium" in changes:
        changes["premium"] = _as_decimal(changes["premium"], field="premium")
        if changes["premium"] < 0:
            raise DomainValidationError("Premium cannot be negative.", field="premium")
    if "commission" in changes:
        changes["commission"] = _as_decimal(changes["commission"], field="commission")
        if changes["commission"] < 0:
            raise DomainValidationError("Commission cannot be negative.", field="commission")
    if "documents" in changes:
        changes["documents"] = list(changes["documents"] or [])
    if "notes" in changes:
        changes["notes"] = changes["notes"] or ""

    with transaction.atomic():
        policy = (
            Policy.all_objects.select_for_update()
            .filter(company=company, id=policy_id)
            .first()
        )
        if policy is None:
            raise NotFoundError("Policy not found.", policy_id=policy_id)
        if policy.is_terminal:
            raise InvalidTransitionError(
                f"Policy in status {policy.status} can no longer be modified.",
                status=policy.status,
            )

        if "start_date" in changes or "end_date" in changes:
            _validate_dates(
                changes.get("start_date", policy.start_date),
                changes.get("end_date", policy.end_date),
            )

        if not changes:
            return policy

        for key, value in changes.items():
            setattr(policy, key, value)
        policy.save(update_fields=[*changes.keys(), "updated_at"])

    logger.info(
        "policy updated",
        extra={"company_id": company.id, "policy_id": policy.id, "fields": sorted(changes)},
    )
    return policy


def _transition(*, company, policy_id, to_status: str, actor=None) -> Policy:
    """Compare-and-set status change: one conditional UPDATE, so concurrent callers cannot both win."""

    policy = Policy.all_objects.filter(company=company, id=policy_id).first()
    if policy is None:
        raise NotFoundError("Policy not found.", policy_id=policy_id)

    with transaction.atomic():
        updated = Policy.all_objects.filter(
            company=company,
            id=policy_id,
            status__in=_sources_for(to_status),
        ).update(status=to_status, updated_at=timezone.now())

    policy.refresh_from_db()
    if not updated:
        raise InvalidTransitionError(
            f"Invalid policy status transition: {policy.status} -> {to_status}.",
            status=policy.status,
        )

    logger.info(
        "policy status changed",
        extra={
            "company_id": company.id,
            "policy_id": policy.id,
            "to_status": to_status,
            "actor_id": getattr(actor, "id", None),
        },
    )
    return policy


def activate_policy(*, company, policy_id, actor=None) -> Policy:
    return _transition(company=company, policy_id=policy_id, to_status=Policy.Status.ACTIVE, actor=actor)


def submit_policy(*, company, policy_id, actor=None) -> Policy:
    return _transition(company=company, policy_id=policy_id, to_status=Policy.Status.PENDING, actor=actor)


def cancel_policy(*, company, policy_id, actor=None) -> Policy:
    return _transition(company=company, policy_id=policy_id, to_status=Policy.Status.CANCELLED, actor=actor)


def expire_policy(*, company, policy_id, actor=None) -> Policy:
    return _transition(company=company, policy_id=policy_id, to_status=Policy.Status.EXPIRED, actor=actor)


def expire_due_policies(*, company=None, today: date | None = None) -> int:
    """Move ACTIVE policies whose end date has passed to EXPIRED. Returns the number moved."""

    today = today or timezone.localdate()
    qs = Policy.all_objects.filter(status=Policy.Status.ACTIVE, end_date__lt=today)
    if company is not None:
        qs = qs.filter(company=company)

    with transaction.atomic():
        expired = qs.update(status=Policy.Status.EXPIRED, updated_at=timezone.now())

    if expired:
        logger.info(
            "policies expired",
            extra={"company_id": getattr(company, "id", None), "count": expired, "today": today.isoformat()},
        )
    return expired

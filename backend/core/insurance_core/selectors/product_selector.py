from __future__ import annotations

from insurance_core.models import InsuranceProduct


def list_products(
    *,
    company,
    partner_id: int | None = None,
    category: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
):
    qs = InsuranceProduct.all_objects.filter(company=company).select_related("partner")
    if partner_id:
        qs = qs.filter(partner_id=partner_id)
    if category:
        qs = qs.filter(category=str(category).strip().upper())
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    if search:
        search = str(search).strip()
        if search:
            qs = qs.filter(name__icontains=search)
    return qs.order_by("category", "name", "id")

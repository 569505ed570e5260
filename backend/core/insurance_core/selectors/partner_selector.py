from __future__ import annotations

from insurance_core.models import Partner


def list_partners(*, company, is_active: bool | None = None, search: str | None = None):
    qs = Partner.all_objects.filter(company=company)
    if is_active is not None:
        qs = qs.filter(is_active=is_active)
    if search:
        search = str(search).strip()
        if search:
            qs = qs.filter(name__icontains=search)
    return qs.order_by("name", "id")

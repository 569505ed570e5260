from __future__ import annotations

from rest_framework import viewsets

from agency_backend.query_params import bool_param, int_param
from insurance_core.api.serializers.product import InsuranceProductSerializer, PartnerSerializer
from insurance_core.models import InsuranceProduct, Partner
from insurance_core.selectors.partner_selector import list_partners
from insurance_core.selectors.product_selector import list_products
from tenancy.permissions import IsTenantRoleAllowed


class PartnerViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = PartnerSerializer
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "partners"

    def get_queryset(self):
        company = getattr(self.request, "company", None)
        if company is None:
            return Partner.objects.none()
        params = self.request.query_params
        return list_partners(
            company=company,
            is_active=bool_param(params.get("is_active")),
            search=params.get("search"),
        )


class InsuranceProductViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InsuranceProductSerializer
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "products"

    def get_queryset(self):
        company = getattr(self.request, "company", None)
        if company is None:
            return InsuranceProduct.objects.none()
        params = self.request.query_params
        return list_products(
            company=company,
            partner_id=int_param(params.get("partner_id")),
            category=params.get("category"),
            is_active=bool_param(params.get("is_active")),
            search=params.get("search"),
        )

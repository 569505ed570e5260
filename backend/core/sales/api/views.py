from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from agency_backend.pagination import SalePagination
from agency_backend.query_params import int_param
from sales.api.serializers import SaleCorrectionSerializer, SaleCreateSerializer, SaleSerializer
from sales.selectors import get_sale, list_sales
from sales.services import correct_sale, record_sale, sale_stats
from tenancy.permissions import IsTenantRoleAllowed


class SaleViewSet(viewsets.ViewSet):
    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "sales"
    pagination_class = SalePagination
    lookup_value_regex = r"\d+"

    def list(self, request):
        params = request.query_params
        queryset = list_sales(
            company=request.company,
            sales_agent_id=int_param(params.get("sales_agent_id")),
            customer_id=int_param(params.get("customer_id")),
            policy_id=int_param(params.get("policy_id")),
        )
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(SaleSerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        return Response(SaleSerializer(get_sale(company=request.company, sale_id=pk)).data)

    def create(self, request):
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        sale = record_sale(
            company=request.company,
            policy_id=data["policy_id"],
            customer_id=data["customer_id"],
            agent_id=data.get("sales_agent_id", request.user.id),
            amount=data["amount"],
            commission=data.get("commission"),
        )
        sale = get_sale(company=request.company, sale_id=sale.id)
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        serializer = SaleCorrectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        correct_sale(
            company=request.company,
            sale_id=pk,
            amount=data["amount"],
            commission=data.get("commission"),
        )
        return Response(SaleSerializer(get_sale(company=request.company, sale_id=pk)).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    @action(detail=False, methods=["get"], url_path="stats", tenant_resource_key="sales_stats")
    def stats(self, request):
        return Response(sale_stats(company=request.company))

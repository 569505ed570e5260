from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from agency_backend.pagination import PolicyPagination
from agency_backend.query_params import int_param
from insurance_core.api.serializers.policy import (
    ManualReminderSerializer,
    PolicyCreateSerializer,
    PolicyDetailSerializer,
    PolicyReminderSerializer,
    PolicySerializer,
    PolicyUpdateSerializer,
)
from insurance_core.selectors.policy_selector import get_policy, list_policies, list_reminders
from insurance_core.services.policy_service import (
    activate_policy,
    cancel_policy,
    create_policy,
    submit_policy,
    update_policy,
)
from insurance_core.services.reminder_service import create_manual_reminder
from tenancy.permissions import IsTenantRoleAllowed


class PolicyViewSet(viewsets.ViewSet):
    """Policies of the request agency. There is no delete: cancellation is a status."""

    permission_classes = [IsTenantRoleAllowed]
    tenant_resource_key = "policies"
    pagination_class = PolicyPagination
    lookup_value_regex = r"\d+"

    def list(self, request):
        params = request.query_params
        queryset = list_policies(
            company=request.company,
            status=params.get("status"),
            customer_id=int_param(params.get("customer_id")),
            product_id=int_param(params.get("product_id")),
            partner_id=int_param(params.get("partner_id")),
            sales_agent_id=int_param(params.get("sales_agent_id")),
            search=params.get("search"),
        )
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(queryset, request, view=self)
        return paginator.get_paginated_response(PolicySerializer(page, many=True).data)

    def retrieve(self, request, pk=None):
        policy = get_policy(company=request.company, policy_id=pk)
        return Response(PolicyDetailSerializer(policy).data)

    def create(self, request):
        serializer = PolicyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        policy = create_policy(
            company=request.company,
            agent=request.user,
            customer_id=data["customer_id"],
            product_id=data["product_id"],
            partner_id=data["partner_id"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            premium=data["premium"],
            commission=data.get("commission"),
            notes=data.get("notes", ""),
            documents=data.get("documents", []),
        )
        policy = get_policy(company=request.company, policy_id=policy.id)
        return Response(PolicySerializer(policy).data, status=status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        serializer = PolicyUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        update_policy(company=request.company, policy_id=pk, data=serializer.validated_data)
        policy = get_policy(company=request.company, policy_id=pk)
        return Response(PolicySerializer(policy).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def _transition_response(self, request, pk, transition):
        transition(company=request.company, policy_id=pk, actor=request.user)
        policy = get_policy(company=request.company, policy_id=pk)
        return Response(PolicySerializer(policy).data)

    @action(detail=True, methods=["put"], url_path="activate")
    def activate(self, request, pk=None):
        return self._transition_response(request, pk, activate_policy)

    @action(detail=True, methods=["put"], url_path="submit")
    def submit(self, request, pk=None):
        return self._transition_response(request, pk, submit_policy)

    @action(detail=True, methods=["put"], url_path="cancel")
    def cancel(self, request, pk=None):
        return self._transition_response(request, pk, cancel_policy)

    @action(
        detail=True,
        methods=["get", "post"],
        url_path="reminders",
        tenant_resource_key="policy_reminders",
    )
    def reminders(self, request, pk=None):
        if request.method == "GET":
            reminders = list_reminders(company=request.company, policy_id=pk)
            return Response(PolicyReminderSerializer(reminders, many=True).data)

        serializer = ManualReminderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reminder = create_manual_reminder(
            company=request.company,
            policy_id=pk,
            reminder_date=serializer.validated_data["reminder_date"],
        )
        return Response(PolicyReminderSerializer(reminder).data, status=status.HTTP_201_CREATED)

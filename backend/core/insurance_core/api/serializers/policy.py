from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from customers.serializers import UserSummarySerializer
from insurance_core.models import Policy, PolicyReminder

_MONEY = {"max_digits": 14, "decimal_places": 2}


class PolicyReminderSerializer(serializers.ModelSerializer):
    class Meta:
        model = PolicyReminder
        fields = (
            "id",
            "policy_id",
            "kind",
            "reminder_date",
            "expiry_date",
            "is_sent",
            "sent_at",
            "customer_notified",
            "agent_notified",
            "created_at",
        )
        read_only_fields = fields


class ManualReminderSerializer(serializers.Serializer):
    reminder_date = serializers.DateField()


class PolicySerializer(serializers.ModelSerializer):
    customer = serializers.SerializerMethodField()
    product = serializers.SerializerMethodField()
    partner = serializers.SerializerMethodField()
    sales_agent = UserSummarySerializer(read_only=True)

    class Meta:
        model = Policy
        fields = (
            "id",
            "policy_number",
            "customer",
            "product",
            "partner",
            "sales_agent",
            "status",
            "start_date",
            "end_date",
            "premium",
            "commission",
            "notes",
            "documents",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_customer(self, obj):
        customer = obj.customer
        return {
            "id": customer.id,
            "name": customer.display_name,
            "email": customer.email,
            "phone": customer.phone,
        }

    def get_product(self, obj):
        return {
            "id": obj.product_id,
            "name": obj.product.name,
            "category": obj.product.category,
            "commission_rate": str(obj.product.commission_rate),
        }

    def get_partner(self, obj):
        return {"id": obj.partner_id, "name": obj.partner.name}


class PolicyDetailSerializer(PolicySerializer):
    reminders = serializers.SerializerMethodField()

    class Meta(PolicySerializer.Meta):
        fields = PolicySerializer.Meta.fields + ("reminders",)
        read_only_fields = fields

    def get_reminders(self, obj):
        reminders = PolicyReminder.all_objects.filter(policy=obj).order_by("reminder_date", "id")
        return PolicyReminderSerializer(reminders, many=True).data


class PolicyCreateSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(min_value=1)
    product_id = serializers.IntegerField(min_value=1)
    partner_id = serializers.IntegerField(min_value=1)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    premium = serializers.DecimalField(min_value=Decimal("0.01"), **_MONEY)
    commission = serializers.DecimalField(
        required=False,
        allow_null=True,
        min_value=Decimal("0"),
        **_MONEY,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    documents = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        default=list,
    )

    def validate(self, attrs):
        if attrs["end_date"] <= attrs["start_date"]:
            raise serializers.ValidationError({"end_date": "End date must be after start date."})
        return attrs


class PolicyUpdateSerializer(serializers.Serializer):
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
    premium = serializers.DecimalField(required=False, min_value=Decimal("0"), **_MONEY)
    commission = serializers.DecimalField(required=False, min_value=Decimal("0"), **_MONEY)
    notes = serializers.CharField(required=False, allow_blank=True)
    documents = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
    )

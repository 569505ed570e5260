from rest_framework import serializers

from customers.serializers import UserSummarySerializer
from sales.models import Sale

_MONEY = {"max_digits": 14, "decimal_places": 2}


class SaleSerializer(serializers.ModelSerializer):
    policy = serializers.SerializerMethodField()
    customer = serializers.SerializerMethodField()
    sales_agent = UserSummarySerializer(read_only=True)

    class Meta:
        model = Sale
        fields = (
            "id",
            "policy",
            "customer",
            "sales_agent",
            "amount",
            "commission",
            "sale_date",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_policy(self, obj):
        return {
            "id": obj.policy_id,
            "policy_number": obj.policy.policy_number,
            "status": obj.policy.status,
        }

    def get_customer(self, obj):
        return {"id": obj.customer_id, "name": obj.customer.display_name}


class SaleCreateSerializer(serializers.Serializer):
    policy_id = serializers.IntegerField()
    customer_id = serializers.IntegerField()
    sales_agent_id = serializers.IntegerField(required=False)
    amount = serializers.DecimalField(**_MONEY)
    commission = serializers.DecimalField(required=False, allow_null=True, **_MONEY)


class SaleCorrectionSerializer(serializers.Serializer):
    amount = serializers.DecimalField(**_MONEY)
    commission = serializers.DecimalField(required=False, allow_null=True, **_MONEY)

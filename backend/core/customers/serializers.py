from rest_framework import serializers

from customers.models import CompanyMembership


class CompanyMembershipReadSerializer(serializers.ModelSerializer):
    company_id = serializers.IntegerField(read_only=True)
    company_name = serializers.CharField(source="company.name", read_only=True)
    tenant_code = serializers.CharField(source="company.tenant_code", read_only=True)

    class Meta:
        model = CompanyMembership
        fields = (
            "company_id",
            "company_name",
            "tenant_code",
            "role",
            "phone",
        )


class UserSummarySerializer(serializers.Serializer):
    """Compact user representation embedded in policy and sale payloads."""

    id = serializers.IntegerField(read_only=True)
    username = serializers.CharField(read_only=True)
    email = serializers.EmailField(read_only=True)
    full_name = serializers.SerializerMethodField()

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.get_username()

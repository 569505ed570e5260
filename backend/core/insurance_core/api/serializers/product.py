from __future__ import annotations

from rest_framework import serializers

from insurance_core.models import InsuranceProduct, Partner


class PartnerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Partner
        fields = (
            "id",
            "name",
            "code",
            "email",
            "phone",
            "website",
            "address",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class InsuranceProductSerializer(serializers.ModelSerializer):
    partner = serializers.SerializerMethodField()

    class Meta:
        model = InsuranceProduct
        fields = (
            "id",
            "partner",
            "name",
            "description",
            "category",
            "premium",
            "commission_rate",
            "is_active",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_partner(self, obj):
        return {"id": obj.partner_id, "name": obj.partner.name}

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from insurance_core.api.views.policy import PolicyViewSet
from insurance_core.api.views.product import InsuranceProductViewSet, PartnerViewSet

router = DefaultRouter()
router.register(r"partners", PartnerViewSet, basename="partner")
router.register(r"products", InsuranceProductViewSet, basename="insurance-product")
router.register(r"policies", PolicyViewSet, basename="policy")

urlpatterns = [
    path("", include(router.urls)),
]

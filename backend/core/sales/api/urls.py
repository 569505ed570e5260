from django.urls import include, path
from rest_framework.routers import DefaultRouter

from sales.api.views import SaleViewSet

router = DefaultRouter()
router.register(r"sales", SaleViewSet, basename="sale")

urlpatterns = [
    path("", include(router.urls)),
]

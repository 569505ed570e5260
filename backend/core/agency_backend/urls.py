from django.contrib import admin
from django.http import JsonResponse
from django.urls import include, path
from rest_framework.authtoken.views import obtain_auth_token

from customers.views import ActiveTenantUserAPIView, AuthenticatedUserAPIView


def healthz(_request):
    return JsonResponse({"status": "ok"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("healthz/", healthz, name="healthz"),
    path("api/auth/token/", obtain_auth_token, name="api-token-auth"),
    path("api/auth/me/", AuthenticatedUserAPIView.as_view(), name="auth-me"),
    path("api/auth/tenant-me/", ActiveTenantUserAPIView.as_view(), name="auth-tenant-me"),
    path("api/", include("insurance_core.api.urls")),
    path("api/", include("sales.api.urls")),
]

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from customers.models import CompanyMembership
from customers.serializers import CompanyMembershipReadSerializer
from tenancy.permissions import IsAuthenticatedTenantMember


class AuthenticatedUserAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        memberships = CompanyMembership.objects.filter(
            user=request.user,
            is_active=True,
            company__is_active=True,
        ).select_related("company")

        return Response(
            {
                "id": request.user.id,
                "username": request.user.username,
                "email": request.user.email,
                "first_name": request.user.first_name,
                "last_name": request.user.last_name,
                "is_superuser": request.user.is_superuser,
                "memberships": CompanyMembershipReadSerializer(memberships, many=True).data,
            }
        )


class ActiveTenantUserAPIView(APIView):
    permission_classes = [IsAuthenticatedTenantMember]

    def get(self, request):
        membership = getattr(request, "tenant_membership", None)
        return Response(
            {
                "user_id": request.user.id,
                "username": request.user.username,
                "company_id": request.company.id,
                "company_name": request.company.name,
                "tenant_code": request.company.tenant_code,
                "role": membership.role if membership else None,
            }
        )

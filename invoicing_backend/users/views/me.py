# users/views/me.py

from drf_spectacular.utils import extend_schema
from rest_framework import serializers
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from permissions.roles import capabilities_for_role

# ---------------------------
# SERIALIZER
# ---------------------------


class MeSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    email = serializers.EmailField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    role = serializers.CharField()
    company = serializers.UUIDField(allow_null=True)
    company_name = serializers.CharField(allow_null=True)
    capabilities = serializers.ListField(child=serializers.CharField())


# ---------------------------
# VIEW
# ---------------------------


class MeView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        responses={200: MeSerializer},
        description="Current user profile, tenant and capabilities",
    )
    def get(self, request):
        user = request.user
        company = getattr(user, "company", None)

        return Response(
            {
                "id": user.id,
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "role": user.role,
                "company": company.id if company else None,
                "company_name": company.name if company else None,
                "capabilities": sorted(capabilities_for_role(user.role)),
            }
        )

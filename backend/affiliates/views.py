from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAffiliate
from . import services


class AffiliateCodeView(APIView):
    """
    GET: the affiliate's code and shareable registration link.
    """
    permission_classes = [IsAuthenticated, IsAffiliate]

    def get(self, request):
        try:
            affiliate_code = services.ensure_affiliate_code(request.user)
        except services.AffiliateCodeError as e:
            return Response({"error": "code_unavailable", "message": str(e)}, status=503)

        return Response({
            "code": affiliate_code.code,
            "referral_link": services.referral_link(affiliate_code.code),
            "created_at": affiliate_code.created_at,
        })


class AffiliateReferralsView(APIView):
    permission_classes = [IsAuthenticated, IsAffiliate]

    def get(self, request):
        try:
            affiliate_code = services.ensure_affiliate_code(request.user)
        except services.AffiliateCodeError as e:
            return Response({"error": "code_unavailable", "message": str(e)}, status=503)

        clients = services.referred_clients(affiliate_code.code)
        data = [
            {
                "id": client.id,
                "full_name": client.full_name,
                "email": client.email,
                "city": client.city,
                "completed_rides": client.completed_rides,
                "joined_at": client.date_joined,
            }
            for client in clients
        ]
        return Response({"code": affiliate_code.code, "clients": data, "count": len(data)})

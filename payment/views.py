import logging

from django.shortcuts import get_object_or_404
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.exceptions import APIException
from drf_spectacular.utils import extend_schema, OpenApiExample, OpenApiParameter, inline_serializer
from drf_spectacular.types import OpenApiTypes
from rest_framework import serializers

from .models import PaymentMethod
from .serializers import PaymentMethodSerializer, CreatePaymentMethodSerializer

logger = logging.getLogger(__name__)


class PaymentMethodInUse(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Payment method is recorded on a closed tab and cannot be deleted'
    default_code = 'conflict'


class PaymentMethodListView(APIView):
    """List and store the caller's payment methods"""

    @extend_schema(
        summary="List payment methods",
        description="Payment methods stored for the authenticated user, default first",
        responses={200: PaymentMethodSerializer(many=True)},
    )
    def get(self, request):
        methods = PaymentMethod.objects.filter(user=request.user).order_by('-is_default', '-created_at')
        return Response({'payment_methods': PaymentMethodSerializer(methods, many=True).data})

    @extend_schema(
        summary="Store a payment method",
        description="Store a card for closing tabs. Cards are not charged by this service.",
        request=CreatePaymentMethodSerializer,
        responses={201: PaymentMethodSerializer},
        examples=[
            OpenApiExample(
                'Store Card Example',
                summary='Store a test Visa card',
                value={
                    'card_number': '4111 1111 1111 1111',
                    'card_cvc': '123',
                    'card_holder_name': 'Alice Brown',
                    'card_brand': 'Visa',
                    'card_exp_month': 12,
                    'card_exp_year': 2030,
                    'is_default': True
                }
            )
        ]
    )
    def post(self, request):
        serializer = CreatePaymentMethodSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        method = serializer.save()
        return Response(PaymentMethodSerializer(method).data, status=status.HTTP_201_CREATED)


class PaymentMethodDetailView(APIView):
    @extend_schema(
        summary="Delete a payment method",
        description="Remove one of the caller's stored cards. A card recorded on a closed tab is kept.",
        parameters=[
            OpenApiParameter(
                name='payment_method_id',
                type=OpenApiTypes.INT,
                location=OpenApiParameter.PATH,
                description='Payment method ID'
            )
        ],
        responses={
            200: inline_serializer('PaymentMethodDeleted', {'message': serializers.CharField()}),
        }
    )
    def delete(self, request, payment_method_id):
        method = get_object_or_404(PaymentMethod, id=payment_method_id, user=request.user)
        if method.tabs.exists():
            raise PaymentMethodInUse()
        method.delete()
        logger.info("User %s deleted payment method %s", request.user.pk, payment_method_id)
        return Response({'message': 'Payment method deleted successfully'})

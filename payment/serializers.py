from rest_framework import serializers
from .models import PaymentMethod


class PaymentMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentMethod
        fields = ['id', 'card_holder_name', 'card_brand', 'last4',
                 'card_exp_month', 'card_exp_year', 'is_default', 'created_at']
        read_only_fields = ['id', 'last4', 'created_at']


class CreatePaymentMethodSerializer(serializers.Serializer):
    """Card details as entered by the customer. Only the last four digits are kept."""
    card_number = serializers.CharField(
        max_length=25, write_only=True,
        help_text="Card number, spaces and dashes allowed"
    )
    card_cvc = serializers.CharField(
        max_length=4, write_only=True,
        help_text="Card verification code (validated, never stored)"
    )
    card_holder_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    card_brand = serializers.CharField(max_length=50, required=False, allow_blank=True)
    card_exp_month = serializers.IntegerField(min_value=1, max_value=12)
    card_exp_year = serializers.IntegerField(min_value=2000, max_value=2100)
    is_default = serializers.BooleanField(required=False, default=False)

    def validate_card_number(self, value):
        digits = ''.join(ch for ch in value if ch not in ' -')
        if not digits.isdigit() or not 12 <= len(digits) <= 19:
            raise serializers.ValidationError("card_number must contain 12 to 19 digits")
        return digits

    def validate_card_cvc(self, value):
        if not value.isdigit() or len(value) not in (3, 4):
            raise serializers.ValidationError("card_cvc must be 3 or 4 digits")
        return value

    def create(self, validated_data):
        user = self.context['request'].user
        digits = validated_data.pop('card_number')
        validated_data.pop('card_cvc')
        if validated_data.get('is_default'):
            PaymentMethod.objects.filter(user=user, is_default=True).update(is_default=False)
        return PaymentMethod.objects.create(user=user, last4=digits[-4:], **validated_data)

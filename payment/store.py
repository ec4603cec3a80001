from .models import PaymentMethod


def belongs_to_user(payment_method_id, user_id):
    """True when the payment method exists and is owned by the user."""
    if payment_method_id is None:
        return False
    return PaymentMethod.objects.filter(id=payment_method_id, user_id=user_id).exists()

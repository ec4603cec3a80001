from django.conf import settings
from django.db import models


class PaymentMethod(models.Model):
	"""A stored card. Cards are kept for closing tabs and are never charged here."""

	user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='payment_methods')
	card_holder_name = models.CharField(max_length=255, blank=True)
	card_brand = models.CharField(max_length=50, blank=True)
	last4 = models.CharField(max_length=4)
	card_exp_month = models.PositiveSmallIntegerField(null=True, blank=True)
	card_exp_year = models.PositiveSmallIntegerField(null=True, blank=True)
	is_default = models.BooleanField(default=False)
	created_at = models.DateTimeField(auto_now_add=True)
	updated_at = models.DateTimeField(auto_now=True)

	def __str__(self):
		return f"{self.card_brand or 'Card'} ending {self.last4} for user {self.user_id}"

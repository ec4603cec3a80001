from django.urls import path
from . import views

urlpatterns = [
    path('payment-methods/', views.PaymentMethodListView.as_view(), name='payment_methods'),
    path('payment-methods/<int:payment_method_id>/', views.PaymentMethodDetailView.as_view(), name='payment_method_detail'),
]

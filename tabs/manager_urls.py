from django.urls import path
from . import views

urlpatterns = [
    path('tabs/', views.ManagerTabsView.as_view(), name='manager_tabs'),
    path('restaurants/<int:restaurant_id>/tabs/', views.RestaurantTabsView.as_view(), name='manager_restaurant_tabs'),
    path('status/', views.ManagerStatusView.as_view(), name='manager_status'),
]

from django.urls import path
from . import views

urlpatterns = [
    path('', views.TabListView.as_view(), name='tabs'),
    path('<int:tab_id>/', views.TabDetailView.as_view(), name='tab_detail'),
    path('<int:tab_id>/items/', views.TabItemListView.as_view(), name='add_tab_item'),
    path('<int:tab_id>/items/<int:item_id>/served/', views.TabItemServedView.as_view(), name='tab_item_served'),
    path('<int:tab_id>/close/', views.CloseTabView.as_view(), name='close_tab'),
]

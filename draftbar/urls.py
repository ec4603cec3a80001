from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/tabs/', include('tabs.urls')),
    path('api/manager/', include('tabs.manager_urls')),
    path('api/restaurants/', include('restaurants.urls')),
    path('api/', include('payment.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='docs'),
]

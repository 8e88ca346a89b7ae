# santabarbara/urls.py
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # API del registro de desechos (lotes QR, registro diario, reportes)
    path('api/', include('desechos.urls', namespace='desechos')),
]

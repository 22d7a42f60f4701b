from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

# Main URL Configuration
# Every app exposes a JSON API under /api/<app>/

urlpatterns = [

    path('admin/', admin.site.urls),
    path('api/accounts/', include('apps.accounts.urls')),
    path('api/', include('apps.core.urls')),
    path('api/leads/', include('apps.leads.urls')),
    path('api/agenda/', include('apps.agenda.urls')),
    path('api/gamification/', include('apps.gamification.urls')),
    path('api/whatsapp/', include('apps.whatsapp.urls')),
    path('api/billing/', include('apps.billing.urls')),
    path('api/backoffice/', include('apps.backoffice.urls')),

]

if settings.DEBUG:
    # Media files (user uploads: logos, avatars)
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)

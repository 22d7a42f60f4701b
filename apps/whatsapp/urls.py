from django.urls import path
from . import views

app_name = 'whatsapp'

urlpatterns = [
    path('webhook/<str:webhook_secret>/', views.webhook_receiver, name='webhook_receiver'),
    path('send/', views.send_message_view, name='send_message'),
    path('leads/<int:lead_id>/messages/', views.lead_messages_view, name='lead_messages'),
    path('config/', views.config_view, name='config'),
    path('campaigns/', views.campaigns_view, name='campaigns'),
    path('campaigns/<int:pk>/', views.campaign_detail_view, name='campaign_detail'),
    path('campaigns/<int:pk>/start/', views.campaign_start_view, name='campaign_start'),
]

from django.urls import path
from . import consumers

websocket_urlpatterns = [
    path('ws/gamification/', consumers.GamificationConsumer.as_asgi()),
]

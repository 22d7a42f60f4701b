from django.urls import path
from . import views

app_name = 'gamification'

urlpatterns = [
    path('leaderboard/', views.leaderboard_view, name='leaderboard'),
    path('me/', views.my_stats_view, name='me'),
    path('settings/', views.settings_view, name='settings'),
]

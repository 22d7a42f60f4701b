from django.urls import path
from . import views


app_name = 'core'

urlpatterns = [
    path('dashboard/stats/', views.dashboard_stats_view, name='dashboard_stats'),
    path('tokens/', views.api_tokens_view, name='api_tokens'),
    path('tokens/<int:pk>/revoke/', views.api_token_revoke_view, name='api_token_revoke'),
    path('demo/seed/', views.demo_seed_view, name='demo_seed'),
]

from django.urls import path
from . import views

app_name = 'accounts'

urlpatterns = [

    path('me/', views.me_view, name='me'),
    path('me/preferences/', views.preferences_view, name='preferences'),
    path('team/', views.team_view, name='team'),
    path('team/<int:pk>/deactivate/', views.team_member_deactivate_view, name='team_deactivate'),
]

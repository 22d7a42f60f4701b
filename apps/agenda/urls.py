from django.urls import path
from . import views

app_name = 'agenda'

urlpatterns = [
    path('upcoming/', views.upcoming_view, name='upcoming'),
    path('tasks/<int:pk>/complete/', views.task_complete_view, name='task_complete'),
    path('meetings/<int:pk>/feedback/', views.meeting_feedback_view, name='meeting_feedback'),
    path('reminders/<int:pk>/complete/', views.reminder_complete_view, name='reminder_complete'),
]

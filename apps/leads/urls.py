from django.urls import path
from . import views
from .api import ExternalLeadCreateView

app_name = 'leads'

urlpatterns = [
    path('kanban/', views.kanban_view, name='kanban'),
    path('summary/', views.pipeline_summary_view, name='summary'),
    path('external/', ExternalLeadCreateView.as_view(), name='external_create'),
    path('import/', views.bulk_import_view, name='bulk_import'),
    path('<int:pk>/', views.lead_detail_view, name='detail'),
    path('<int:pk>/move/', views.lead_move_view, name='move'),
    path('<int:pk>/qualify/', views.lead_qualify_view, name='qualify'),
    path('<int:pk>/assign/', views.lead_assign_view, name='assign'),
    path('<int:pk>/observations/', views.lead_observations_view, name='observations'),
    path('<int:pk>/values/', views.lead_values_view, name='values'),
    path('<int:pk>/analysis/', views.lead_analysis_view, name='analysis'),
]

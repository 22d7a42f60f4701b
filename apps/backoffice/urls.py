from django.urls import path
from . import views

app_name = 'backoffice'

urlpatterns = [
    path('otp/request/', views.otp_request_view, name='otp_request'),
    path('otp/verify/', views.otp_verify_view, name='otp_verify'),
    path('token/validate/', views.token_validate_view, name='token_validate'),
    path('logout/', views.logout_view, name='logout'),
    path('overview/', views.overview_view, name='overview'),
    path('companies/', views.companies_view, name='companies'),
]

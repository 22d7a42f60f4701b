from django.urls import path
from . import views

app_name = 'billing'

urlpatterns = [
    path('stripe/webhook/', views.stripe_webhook_view, name='stripe_webhook'),
    path('subscription/', views.subscription_view, name='subscription'),
    path('plans/', views.plans_view, name='plans'),
]

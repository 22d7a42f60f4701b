from django.conf import settings
from django.utils.html import escape

from apps.core.emails import send_notification_email
from .plans import PLAN_DISPLAY_NAMES


def send_welcome_email(user, temporary_password, plan_type):
    plan_name = PLAN_DISPLAY_NAMES.get(plan_type, plan_type)
    login_url = f"{settings.APP_URL}/auth"

    text = (
        f"Welcome to WorkFlow360, {user.get_short_name()}!\n\n"
        f"Your {plan_name} plan is active and includes a {settings.BILLING_TRIAL_DAYS}-day trial.\n\n"
        f"Email: {user.email}\n"
        f"Temporary password: {temporary_password}\n\n"
        f"Log in at {login_url}. You will be asked to choose a new password.\n"
    )
    html = (
        f"<h1>Welcome to WorkFlow360!</h1>"
        f"<p>Your <strong>{escape(plan_name)}</strong> plan is active and includes a "
        f"{settings.BILLING_TRIAL_DAYS}-day trial.</p>"
        f"<p>Email: <strong>{escape(user.email)}</strong><br>"
        f"Temporary password: <code>{escape(temporary_password)}</code></p>"
        f"<p><a href=\"{login_url}\">Access WorkFlow360</a></p>"
        f"<p>You will be asked to choose a new password on first login.</p>"
    )
    return send_notification_email('Welcome to WorkFlow360 - your access details', user.email, text, html)


def send_plan_activated_email(user, plan_type):
    plan_name = PLAN_DISPLAY_NAMES.get(plan_type, plan_type)

    text = (
        f"Hello {user.get_short_name()},\n\n"
        f"Your {plan_name} plan is now active on WorkFlow360.\n"
        f"{settings.APP_URL}\n"
    )
    html = (
        f"<h1>Plan activated</h1>"
        f"<p>Hello {escape(user.get_short_name())}, your <strong>{escape(plan_name)}</strong> "
        f"plan is now active.</p>"
        f"<p><a href=\"{settings.APP_URL}\">Open WorkFlow360</a></p>"
    )
    return send_notification_email(f'Your {plan_name} plan is active', user.email, text, html)

import logging
import secrets

from django.conf import settings
from django.db import transaction

from apps.core.emails import send_notification_email
from .models import User

logger = logging.getLogger(__name__)

# No 0/O, 1/l/I: the password is typed by hand from an email
TEMPORARY_PASSWORD_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789!@#$%'


class TeamError(Exception):
    status_code = 400


class SeatLimitReached(TeamError):
    status_code = 403


class DuplicateEmail(TeamError):
    status_code = 409


def generate_temporary_password(length=12):
    return ''.join(secrets.choice(TEMPORARY_PASSWORD_ALPHABET) for _ in range(length))


def split_name(full_name):
    parts = (full_name or '').strip().split(' ', 1)
    first_name = parts[0] if parts else ''
    last_name = parts[1] if len(parts) > 1 else ''
    return first_name, last_name


def add_team_member(company, name, email, role, invited_by=None):
    """
    Create a manager or seller inside the company

    Enforces the seat limit of the company's plan and sends the temporary
    credentials by email.

    Returns:
        tuple: (user, temporary_password)

    Raises:
        TeamError: invalid role
        SeatLimitReached: no seats left on the plan
        DuplicateEmail: email already registered
    """
    if role not in (User.ROLE_MANAGER, User.ROLE_SELLER):
        raise TeamError('Role must be manager or seller')

    email = (email or '').strip().lower()
    if not email:
        raise TeamError('Email is required')

    with transaction.atomic():
        available = company.seats_available()
        if available is not None and available <= 0:
            raise SeatLimitReached(
                f'User limit reached ({company.seat_limit()}). Upgrade your plan to add more users.'
            )

        if User.objects.filter(email__iexact=email).exists():
            raise DuplicateEmail('A user with this email already exists')

        password = generate_temporary_password()
        first_name, last_name = split_name(name)
        user = User.objects.create_user(
            email=email,
            password=password,
            first_name=first_name or email.split('@')[0],
            last_name=last_name,
            company=company,
            role=role,
            must_change_password=True,
        )

    logger.info(f"Team member {user.email} ({role}) added to {company.name}")
    send_team_invite_email(user, password, invited_by)
    return user, password


def send_team_invite_email(user, password, invited_by=None):
    inviter = invited_by.get_full_name() if invited_by else 'Your manager'
    text = (
        f"Hello {user.get_short_name()},\n\n"
        f"{inviter} added you to {user.company.name} on WorkFlow360.\n\n"
        f"Email: {user.email}\n"
        f"Temporary password: {password}\n\n"
        f"You will be asked to choose a new password on first login.\n"
        f"{settings.APP_URL}/auth\n"
    )
    return send_notification_email('Your WorkFlow360 access', user.email, text)

"""
Account provisioning driven by Stripe.

- checkout.session.completed: activate the plan of an existing customer, or
  create company + owner account for a new one
- customer.subscription.updated / deleted: keep the local row in sync
- check_subscription: ask Stripe directly for a user's active subscription

Stripe objects are read with item access only, so the same helpers work for
plain webhook dicts and for objects returned by the stripe library.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone

import stripe
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User
from apps.accounts.team import generate_temporary_password
from apps.core.models import Company
from .emails import send_plan_activated_email, send_welcome_email
from .models import Subscription
from .plans import plan_for_price

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_NAME = 'Minha Empresa'

STRIPE_STATUS_MAP = {
    'active': Subscription.STATUS_ACTIVE,
    'trialing': Subscription.STATUS_TRIALING,
    'past_due': Subscription.STATUS_PAST_DUE,
    'unpaid': Subscription.STATUS_PAST_DUE,
    'canceled': Subscription.STATUS_CANCELED,
    'incomplete': Subscription.STATUS_INACTIVE,
    'incomplete_expired': Subscription.STATUS_INACTIVE,
    'paused': Subscription.STATUS_INACTIVE,
}


@dataclass
class ProvisioningResult:
    user: User
    company: Company
    subscription: Subscription
    user_created: bool
    email_sent: bool


def stripe_field(obj, *path, default=None):
    """Walk nested Stripe data: stripe_field(sub, 'items', 'data', 0, 'price', 'id')"""
    current = obj
    for key in path:
        if current is None:
            return default
        try:
            current = current[key]
        except (KeyError, IndexError, TypeError, AttributeError):
            return default
    return current if current is not None else default


def from_timestamp(value):
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)


def subscription_price_id(stripe_subscription):
    return stripe_field(stripe_subscription, 'items', 'data', 0, 'price', 'id')


def subscription_period(stripe_subscription):
    """Period bounds live on the subscription or, on newer API versions, on its first item"""
    start = stripe_field(stripe_subscription, 'current_period_start') or \
        stripe_field(stripe_subscription, 'items', 'data', 0, 'current_period_start')
    end = stripe_field(stripe_subscription, 'current_period_end') or \
        stripe_field(stripe_subscription, 'items', 'data', 0, 'current_period_end')
    return from_timestamp(start), from_timestamp(end)


def retrieve_subscription(subscription_id):
    return stripe.Subscription.retrieve(subscription_id, api_key=settings.STRIPE_SECRET_KEY)


def extract_customer_email(session):
    return stripe_field(session, 'customer_email') or stripe_field(session, 'customer_details', 'email')


def upsert_subscription(company, **fields):
    subscription, created = Subscription.objects.update_or_create(company=company, defaults=fields)
    logger.info(
        f"Subscription {'created' if created else 'updated'} for {company.name}: "
        f"{subscription.plan_type} ({subscription.status})"
    )
    return subscription


def _create_owner_company(user):
    company = Company.objects.create(name=DEFAULT_COMPANY_NAME, owner=user)
    user.company = company
    user.role = User.ROLE_OWNER
    user.save(update_fields=['company', 'role', 'updated_at'])
    return company


def handle_checkout_completed(session):
    """
    Provision the account paid for by a completed checkout session

    Returns:
        ProvisioningResult, or None when the session carries no email
    """
    email = extract_customer_email(session)
    if not email:
        logger.warning(f"Checkout session {stripe_field(session, 'id')} has no customer email")
        return None
    email = email.strip().lower()

    subscription_id = stripe_field(session, 'subscription') or ''
    customer_id = stripe_field(session, 'customer') or ''

    plan_type, user_limit = plan_for_price(None)
    price_id = ''
    if subscription_id:
        try:
            stripe_subscription = retrieve_subscription(subscription_id)
            price_id = subscription_price_id(stripe_subscription) or ''
            plan_type, user_limit = plan_for_price(price_id)
        except stripe.StripeError as e:
            logger.error(f"Could not retrieve subscription {subscription_id}: {str(e)}")

    now = timezone.now()
    subscription_fields = {
        'status': Subscription.STATUS_ACTIVE,
        'plan_type': plan_type,
        'user_limit': user_limit,
        'stripe_customer_id': customer_id,
        'stripe_subscription_id': subscription_id,
        'stripe_price_id': price_id,
        'current_period_start': now,
        'current_period_end': now + timedelta(days=settings.BILLING_PERIOD_DAYS),
        'cancel_at_period_end': False,
    }

    user = User.objects.select_related('company').filter(email__iexact=email).first()

    if user:
        logger.info(f"Checkout for existing user {email}: activating {plan_type}")
        with transaction.atomic():
            company = user.company or _create_owner_company(user)
            subscription = upsert_subscription(company, **subscription_fields)

        email_sent = send_plan_activated_email(user, plan_type)
        return ProvisioningResult(user, company, subscription, user_created=False, email_sent=email_sent)

    logger.info(f"Checkout for new customer {email}: creating account ({plan_type})")
    password = generate_temporary_password()

    with transaction.atomic():
        company = Company.objects.create(name=DEFAULT_COMPANY_NAME)
        user = User.objects.create_user(
            email=email,
            password=password,
            first_name=email.split('@')[0],
            company=company,
            role=User.ROLE_OWNER,
            must_change_password=True,
        )
        company.owner = user
        company.save(update_fields=['owner', 'updated_at'])
        subscription = upsert_subscription(company, **subscription_fields)

    email_sent = send_welcome_email(user, password, plan_type)
    return ProvisioningResult(user, company, subscription, user_created=True, email_sent=email_sent)


def sync_subscription(stripe_subscription, deleted=False):
    """Mirror a Stripe subscription object onto the local row (if we know it)"""
    subscription_id = stripe_field(stripe_subscription, 'id')
    customer_id = stripe_field(stripe_subscription, 'customer')

    subscription = None
    if subscription_id:
        subscription = Subscription.objects.filter(stripe_subscription_id=subscription_id).first()
    if subscription is None and customer_id:
        subscription = Subscription.objects.filter(stripe_customer_id=customer_id).first()
    if subscription is None:
        logger.warning(f"Received update for unknown subscription {subscription_id}")
        return None

    if deleted:
        subscription.status = Subscription.STATUS_CANCELED
    else:
        stripe_status = stripe_field(stripe_subscription, 'status', default='')
        subscription.status = STRIPE_STATUS_MAP.get(stripe_status, Subscription.STATUS_INACTIVE)

    price_id = subscription_price_id(stripe_subscription)
    if price_id:
        subscription.plan_type, subscription.user_limit = plan_for_price(price_id)
        subscription.stripe_price_id = price_id

    period_start, period_end = subscription_period(stripe_subscription)
    if period_start:
        subscription.current_period_start = period_start
    if period_end:
        subscription.current_period_end = period_end

    subscription.cancel_at_period_end = bool(stripe_field(stripe_subscription, 'cancel_at_period_end'))
    subscription.stripe_subscription_id = subscription_id or subscription.stripe_subscription_id
    subscription.save()

    logger.info(f"Subscription {subscription_id} synced: {subscription.status}")
    return subscription


FREE_PLAN_STATUS = {
    'subscribed': False,
    'plan_type': Subscription.PLAN_FREE,
    'user_limit': 1,
    'subscription_end': None,
}


def check_subscription(user):
    """
    Ask Stripe for the user's active subscription and refresh the local copy

    Returns:
        dict: subscribed, plan_type, user_limit, subscription_end
    """
    customers = stripe.Customer.list(email=user.email, limit=1, api_key=settings.STRIPE_SECRET_KEY)
    customer_id = stripe_field(customers, 'data', 0, 'id')
    if not customer_id:
        logger.info(f"No Stripe customer for {user.email}, free plan")
        return dict(FREE_PLAN_STATUS)

    subscriptions = stripe.Subscription.list(
        customer=customer_id,
        status='active',
        limit=1,
        api_key=settings.STRIPE_SECRET_KEY
    )
    stripe_subscription = stripe_field(subscriptions, 'data', 0)
    if not stripe_subscription:
        return dict(FREE_PLAN_STATUS)

    price_id = subscription_price_id(stripe_subscription) or ''
    plan_type, user_limit = plan_for_price(price_id)
    period_start, period_end = subscription_period(stripe_subscription)

    if user.company_id:
        upsert_subscription(
            user.company,
            status=Subscription.STATUS_ACTIVE,
            plan_type=plan_type,
            user_limit=user_limit,
            stripe_customer_id=customer_id,
            stripe_subscription_id=stripe_field(stripe_subscription, 'id') or '',
            stripe_price_id=price_id,
            current_period_start=period_start,
            current_period_end=period_end,
            cancel_at_period_end=bool(stripe_field(stripe_subscription, 'cancel_at_period_end')),
        )

    return {
        'subscribed': True,
        'plan_type': plan_type,
        'user_limit': user_limit,
        'subscription_end': period_end.isoformat() if period_end else None,
    }

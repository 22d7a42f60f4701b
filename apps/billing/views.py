import json
import logging

import stripe
from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.accounts.decorators import api_login_required
from .plans import PLANS
from .provisioning import check_subscription, handle_checkout_completed, sync_subscription

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["POST"])
def stripe_webhook_view(request):

    payload = request.body.decode('utf-8')
    signature = request.META.get('HTTP_STRIPE_SIGNATURE', '')

    # Step 1: Verify the signature
    if settings.STRIPE_WEBHOOK_SECRET:
        try:
            stripe.WebhookSignature.verify_header(payload, signature, settings.STRIPE_WEBHOOK_SECRET)
        except stripe.SignatureVerificationError as e:
            logger.error(f"Invalid Stripe signature: {str(e)}")
            return JsonResponse({'error': 'Invalid signature'}, status=400)
    elif not settings.DEBUG:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured, refusing unsigned webhook")
        return JsonResponse({'error': 'Webhook secret not configured'}, status=500)
    else:
        logger.warning("Processing unsigned Stripe webhook (DEBUG mode)")

    # Step 2: Parse the event
    try:
        event = json.loads(payload)
    except json.JSONDecodeError:
        logger.error("Invalid JSON payload from Stripe")
        return JsonResponse({'error': 'Invalid payload'}, status=400)
    if not isinstance(event, dict):
        logger.error("Stripe payload is not an event object")
        return JsonResponse({'error': 'Invalid payload'}, status=400)

    event_type = event.get('type')
    logger.info(f"Stripe event received: {event_type} ({event.get('id')})")

    # Step 3: Dispatch
    try:
        data_object = event.get('data', {}).get('object', {})

        if event_type == 'checkout.session.completed':
            result = handle_checkout_completed(data_object)
            if result is None:
                return JsonResponse({'received': True, 'message': 'no email'})
            return JsonResponse({
                'received': True,
                'user_created': result.user_created,
                'plan_type': result.subscription.plan_type,
            })

        if event_type in ('customer.subscription.updated', 'customer.subscription.deleted'):
            sync_subscription(data_object, deleted=event_type == 'customer.subscription.deleted')

        return JsonResponse({'received': True})

    except Exception as e:
        logger.error(f"Error processing Stripe event {event_type}: {str(e)}", exc_info=True)
        return JsonResponse({'error': 'Webhook processing failed'}, status=500)


@api_login_required
@require_http_methods(["GET"])
def subscription_view(request):
    try:
        data = check_subscription(request.user)
    except stripe.StripeError as e:
        logger.error(f"Stripe error checking subscription for {request.user.email}: {str(e)}")
        return JsonResponse({'status': 'error', 'message': 'Could not reach the payment provider'}, status=502)
    except Exception as e:
        logger.error(f"Unexpected error in subscription_view: {str(e)}", exc_info=True)
        return JsonResponse({'status': 'error', 'message': 'Internal server error'}, status=500)

    return JsonResponse({'status': 'success', 'data': data})


@require_http_methods(["GET"])
def plans_view(request):
    return JsonResponse({'status': 'success', 'data': [plan.to_dict() for plan in PLANS]})

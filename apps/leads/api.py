"""
External lead ingestion (landing pages, Google Sheets, Zapier...).

POST /api/leads/external/
Authorization: Bearer <company API token>

The only Django REST Framework view of the project: token authentication,
throttling and payload validation come from DRF, the rest of the API is
plain JSON views.
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from rest_framework import exceptions, serializers, status
from rest_framework.authentication import BaseAuthentication, get_authorization_header
from rest_framework.permissions import BasePermission
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.models import ApiToken, IntegrationLog
from apps.core.ratelimit import check_rate_limit, get_client_ip
from .models import Lead

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_EXTERNAL_SOURCE = 'API/Google Sheets'


class ApiTokenAuthentication(BaseAuthentication):
    """Authenticates the calling system (not a user): request.auth is the ApiToken"""

    keyword = 'Bearer'

    def authenticate(self, request):
        header = get_authorization_header(request).split()
        if not header:
            return None

        if header[0].lower() != self.keyword.lower().encode() or len(header) != 2:
            raise exceptions.AuthenticationFailed('Invalid authorization header. Use: Bearer <token>')

        try:
            key = header[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token')

        token = ApiToken.objects.select_related('company').filter(
            token=key,
            is_active=True,
            company__is_active=True
        ).first()
        if token is None:
            raise exceptions.AuthenticationFailed('Invalid or inactive API token')

        token.touch()
        return (None, token)

    def authenticate_header(self, request):
        return self.keyword


class HasApiToken(BasePermission):

    def has_permission(self, request, view):
        return isinstance(request.auth, ApiToken)


class ExternalLeadSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=30)
    company = serializers.CharField(required=False, allow_blank=True, max_length=200)
    source = serializers.CharField(required=False, allow_blank=True, max_length=100)
    estimated_value = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)
    assigned_to = serializers.IntegerField(required=False, allow_null=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=100), required=False)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value

    def validate_phone(self, value):
        return Lead.normalize_phone(value)

    def validate_email(self, value):
        return value.strip().lower() if value else None


class ExternalLeadCreateView(APIView):
    authentication_classes = [ApiTokenAuthentication]
    permission_classes = [HasApiToken]

    def initial(self, request, *args, **kwargs):
        # Rate limit before authenticating, so token guessing is throttled too
        result = check_rate_limit(
            identifier=get_client_ip(request),
            endpoint='create-lead-from-external',
            max_requests=settings.EXTERNAL_LEADS_RATE_LIMIT,
            window_seconds=60
        )
        if not result.allowed:
            raise exceptions.Throttled(wait=result.retry_after)
        super().initial(request, *args, **kwargs)

    def _log(self, token, log_status, request_data, response_data=None, error=''):
        IntegrationLog.objects.create(
            company=token.company,
            integration_type=IntegrationLog.TYPE_API,
            action='create_lead',
            status=log_status,
            request_data=request_data,
            response_data=response_data or {},
            error_message=error
        )

    def post(self, request):
        token = request.auth
        company = token.company
        request_data = dict(request.data.items()) if hasattr(request.data, 'items') else {}

        serializer = ExternalLeadSerializer(data=request.data)
        if not serializer.is_valid():
            self._log(token, IntegrationLog.STATUS_ERROR, request_data, error=str(serializer.errors))
            return Response({
                'status': 'error',
                'message': 'Invalid data',
                'errors': serializer.errors
            }, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data

        email = data.get('email')
        if email and Lead.objects.filter(company=company, email__iexact=email).exists():
            error = f'A lead with email {email} already exists'
            self._log(token, IntegrationLog.STATUS_ERROR, request_data, error=error)
            return Response({'status': 'error', 'message': error}, status=status.HTTP_409_CONFLICT)

        assigned_to = None
        if data.get('assigned_to'):
            assigned_to = User.objects.filter(
                pk=data['assigned_to'],
                company=company,
                is_active=True
            ).first()
            if assigned_to is None:
                logger.warning(f"Ignoring assigned_to={data['assigned_to']}: not an active user of {company.name}")

        try:
            with transaction.atomic():
                lead = Lead.objects.create(
                    company=company,
                    name=data['name'],
                    email=email,
                    phone=data.get('phone', ''),
                    company_name=data.get('company', ''),
                    source=data.get('source') or DEFAULT_EXTERNAL_SOURCE,
                    estimated_value=data.get('estimated_value'),
                    status=Lead.STATUS_NEW,
                    assigned_to=assigned_to,
                )
                if data.get('tags'):
                    lead.tags.add(*data['tags'])
                if data.get('notes'):
                    lead.add_observation(data['notes'], user=None)
        except Exception as e:
            logger.error(f"Error creating external lead for {company.name}: {str(e)}", exc_info=True)
            self._log(token, IntegrationLog.STATUS_ERROR, request_data, error=str(e))
            return Response({'status': 'error', 'message': 'Internal server error'},
                            status=status.HTTP_500_INTERNAL_SERVER_ERROR)

        response_data = {'id': lead.id, 'name': lead.name, 'status': lead.status}
        self._log(token, IntegrationLog.STATUS_SUCCESS, request_data, response_data=response_data)
        logger.info(f"External lead {lead.id} created for {company.name} via token '{token.name}'")

        return Response({
            'status': 'success',
            'message': 'Lead created',
            'data': response_data
        }, status=status.HTTP_201_CREATED)

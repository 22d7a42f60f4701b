"""
This module handles communication with Evolution API for sending WhatsApp messages.

Features:
- Send text messages
- Send media messages (images, videos, documents)
- Handle API errors
- Update message status
"""

import re
import logging
from typing import Dict, Optional, Tuple

import requests
from django.conf import settings

from apps.core.errors import map_api_error
from .models import WhatsAppConfig, WhatsAppMessage

logger = logging.getLogger(__name__)


def clean_phone(value: Optional[str]) -> str:
    """Evolution expects digits only: '+55 (11) 99999-0000' → '5511999990000'"""
    return re.sub(r'\D', '', value or '')


class EvolutionAPIClient:

    def __init__(self, api_url: str, instance_name: str, api_key: str, timeout: Optional[int] = None):

        self.api_url = (api_url or '').rstrip('/')
        self.instance_name = instance_name
        self.api_key = api_key
        self.timeout = timeout or settings.EVOLUTION_API_TIMEOUT

    @classmethod
    def for_company(cls, company) -> Optional['EvolutionAPIClient']:
        """
        Client for the company's own instance, or the global one from settings

        Returns None when no complete configuration is available.
        """
        config = WhatsAppConfig.objects.filter(company=company, is_active=True).first()
        if config:
            client = cls(config.get_api_url(), config.get_instance_name(), config.get_api_key())
        else:
            client = cls(settings.EVOLUTION_API_URL, settings.EVOLUTION_INSTANCE_NAME, settings.EVOLUTION_API_KEY)

        if not client.is_configured():
            logger.error(f"WhatsApp is not configured for company {company}")
            return None
        return client

    def is_configured(self) -> bool:
        return bool(self.api_url and self.instance_name and self.api_key)

    def _get_headers(self) -> Dict[str, str]:

        return {
            'Content-Type': 'application/json',
            'apikey': self.api_key,
        }

    def _make_request(self, endpoint: str, data: Dict) -> Tuple[bool, Optional[Dict], Optional[str]]:

        url = f"{self.api_url}{endpoint}/{self.instance_name}"

        try:
            logger.info(f"Making POST request to {url}")
            response = requests.post(url, headers=self._get_headers(), json=data, timeout=self.timeout)
            logger.info(f"Response status: {response.status_code}")

            if response.status_code in [200, 201]:
                try:
                    response_data = response.json()
                except ValueError:
                    response_data = {}
                if not isinstance(response_data, dict):
                    response_data = {}
                return True, response_data, None

            # API returned error
            error_message = f"Evolution API returned {response.status_code}: {map_api_error(response.status_code)}"
            try:
                error_data = response.json()
                detail = (error_data.get('message') or error_data.get('error')) if isinstance(error_data, dict) else None
                if detail:
                    error_message = f"Evolution API returned {response.status_code}: {detail}"
            except ValueError:
                pass

            logger.error(f"API error: {error_message}")
            return False, None, error_message

        except requests.exceptions.Timeout:
            error_message = "Request timeout - Evolution API did not respond"
            logger.error(error_message)
            return False, None, error_message

        except requests.exceptions.ConnectionError:
            error_message = "Connection error - Could not reach Evolution API"
            logger.error(error_message)
            return False, None, error_message

        except requests.exceptions.RequestException as e:
            error_message = f"Request error: {str(e)}"
            logger.error(error_message)
            return False, None, error_message

    @staticmethod
    def _message_id(response_data: Optional[Dict]) -> Optional[str]:
        key = (response_data or {}).get('key') or {}
        return key.get('id') if isinstance(key, dict) else None

    def send_text(self, phone: str, text: str) -> Tuple[bool, Optional[str], Optional[str]]:

        number = clean_phone(phone)
        logger.info(f"Sending text message to {number}")

        success, response_data, error = self._make_request(
            endpoint='/message/sendText',
            data={'number': number, 'text': text}
        )

        if success:
            message_id = self._message_id(response_data)
            logger.info(f"Message sent successfully. ID: {message_id}")
            return True, message_id, None
        return False, None, error

    def send_media(self, phone: str, media_url: str, media_type: str, caption: Optional[str] = None) -> Tuple[bool, Optional[str], Optional[str]]:

        number = clean_phone(phone)
        logger.info(f"Sending {media_type} message to {number}")

        payload = {
            'number': number,
            'mediatype': media_type or WhatsAppMessage.MEDIA_IMAGE,
            'media': media_url,
        }
        if caption:
            payload['caption'] = caption

        success, response_data, error = self._make_request(endpoint='/message/sendMedia', data=payload)

        if success:
            message_id = self._message_id(response_data)
            logger.info(f"Media message sent successfully. ID: {message_id}")
            return True, message_id, None
        return False, None, error


def send_whatsapp_message(message_obj: WhatsAppMessage, text: Optional[str] = None) -> Tuple[bool, Optional[str]]:
    """
    Send a stored outgoing message and record the outcome on it

    `text` is the raw text to deliver; the stored copy may be HTML-escaped.
    """
    try:
        if message_obj.direction != WhatsAppMessage.DIRECTION_SENT:
            error = "Can only send outgoing messages"
            logger.error(error)
            return False, error

        client = EvolutionAPIClient.for_company(message_obj.company)
        if client is None:
            error = "WhatsApp configuration is incomplete"
            message_obj.mark_as_failed(error)
            return False, error

        body = text if text is not None else message_obj.message

        if message_obj.has_media():
            success, provider_id, error = client.send_media(
                phone=message_obj.phone,
                media_url=message_obj.media_url,
                media_type=message_obj.media_type,
                caption=body or None
            )
        else:
            success, provider_id, error = client.send_text(phone=message_obj.phone, text=body)

        if success:
            message_obj.mark_as_sent(provider_message_id=provider_id)
            logger.info(f"Message {message_obj.id} sent successfully")
            return True, None

        message_obj.mark_as_failed(error)
        logger.error(f"Message {message_obj.id} failed: {error}")
        return False, error

    except Exception as e:
        error = f"Unexpected error: {str(e)}"
        logger.error(error, exc_info=True)
        message_obj.mark_as_failed(error)
        return False, error

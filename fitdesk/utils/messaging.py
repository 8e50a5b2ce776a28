"""
Messaging client - SMS and WhatsApp through Twilio
"""

import logging
import re
from typing import Optional

import requests
from flask import current_app
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from fitdesk.utils.errors import MessagingError

logger = logging.getLogger(__name__)

SMS = 'sms'
WHATSAPP = 'whatsapp'
CHANNELS = (SMS, WHATSAPP)


def to_e164(phone: str) -> str:
    """Normalize a phone number to E.164, assuming India without a country code"""
    phone = phone.strip()
    digits = re.sub(r'\D', '', phone)
    if len(digits) == 10 and not digits.startswith('6'):
        return f'+91{digits}'
    if len(digits) == 12 and digits.startswith('91'):
        return f'+{digits}'
    return phone if phone.startswith('+') else f'+{digits}'


class TwilioClient:
    """Send messages through Twilio"""

    def __init__(self, account_sid: Optional[str], auth_token: Optional[str],
                 sms_from: Optional[str] = None, whatsapp_from: Optional[str] = None,
                 timeout: int = 30):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.sms_from = sms_from
        self.whatsapp_from = whatsapp_from
        self.timeout = timeout

    @classmethod
    def from_config(cls, config=None) -> 'TwilioClient':
        config = config if config is not None else current_app.config
        return cls(
            account_sid=config.get('TWILIO_ACCOUNT_SID'),
            auth_token=config.get('TWILIO_AUTH_TOKEN'),
            sms_from=config.get('TWILIO_SMS_FROM'),
            whatsapp_from=config.get('TWILIO_WHATSAPP_FROM'),
            timeout=config.get('TWILIO_TIMEOUT', 30),
        )

    def _check_credentials(self):
        if not self.account_sid or not self.auth_token:
            raise MessagingError(
                'Twilio is not configured (missing TWILIO_ACCOUNT_SID or TWILIO_AUTH_TOKEN)'
            )

    def _create(self, to: str, from_: str, body: str) -> str:
        """Create a message and return its sid"""
        client = Client(self.account_sid, self.auth_token,
                        http_client=TwilioHttpClient(timeout=self.timeout))
        try:
            message = client.messages.create(to=to, from_=from_, body=body)
        except TwilioRestException as e:
            logger.error('Twilio error: %s %s', e.status, e.msg)
            raise MessagingError(e.msg or 'Twilio request failed')
        except TwilioException as e:
            logger.error('Twilio error: %s', e)
            raise MessagingError(str(e) or 'Twilio request failed')
        except requests.exceptions.Timeout:
            logger.error('Twilio request timed out')
            raise MessagingError('Messaging provider timed out')
        except requests.exceptions.RequestException as e:
            logger.error('Twilio request failed: %s', e)
            raise MessagingError('Could not reach messaging provider')

        return message.sid or ''

    def send_sms(self, to: str, body: str) -> str:
        """Send an SMS, returns the message sid"""
        self._check_credentials()
        if not self.sms_from:
            raise MessagingError('Twilio SMS is not configured (missing TWILIO_SMS_FROM)')

        number = to if to.startswith('+') else to_e164(to)
        return self._create(number, self.sms_from.strip(), body)

    def send_whatsapp(self, to: str, body: str) -> str:
        """Send a WhatsApp message, returns the message sid"""
        self._check_credentials()
        sender = self.whatsapp_from or 'whatsapp:+14155238886'

        number = to if to.startswith('whatsapp:') else f'whatsapp:{to_e164(to)}'
        return self._create(number, sender, body)

    def send(self, channel: str, to: str, body: str) -> str:
        if channel == WHATSAPP:
            return self.send_whatsapp(to, body)
        return self.send_sms(to, body)

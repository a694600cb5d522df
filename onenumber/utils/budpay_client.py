"""
BudPay Client - transaction initialization and verification over HTTPS
"""
import logging
from functools import wraps
from typing import Dict, Any, Optional

import requests
from flask import current_app

from onenumber.exceptions import ConfigurationError, GatewayError, GatewayTimeoutError

logger = logging.getLogger(__name__)


def handle_gateway_errors(func):
    """Decorator mapping requests failures to gateway exceptions"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"BudPay timeout: {str(e)}")
            raise GatewayTimeoutError('Payment provider timed out')
        except requests.exceptions.HTTPError as e:
            response = e.response
            status_code = response.status_code if response is not None else 502
            detail = _error_detail(response)
            logger.error(f"BudPay HTTP {status_code}: {detail}")
            raise GatewayError(detail or 'Error from payment provider', status_code=status_code)
        except requests.exceptions.RequestException as e:
            logger.error(f"BudPay network error: {str(e)}")
            raise GatewayError('Could not reach payment provider')

    return wrapper


def _error_detail(response) -> Optional[str]:
    if response is None:
        return None
    try:
        return response.json().get('message')
    except ValueError:
        return response.text or None


class BudPayClient:
    """Thin wrapper over the BudPay v2 transaction endpoints"""

    def __init__(self, secret_key=None, base_url=None, timeout=None, session=None):
        config = current_app.config
        self.secret_key = secret_key or config.get('BUDPAY_SECRET_KEY')
        self.base_url = (base_url or config.get('BUDPAY_BASE_URL')).rstrip('/')
        self.timeout = timeout or config.get('BUDPAY_TIMEOUT', 10)
        self.session = session or requests.Session()

        if not self.secret_key:
            raise ConfigurationError('Payment service configuration error')

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f"Bearer {self.secret_key}",
            'Content-Type': 'application/json'
        }

    @handle_gateway_errors
    def initialize_transaction(self, email, amount, currency, callback, reference,
                               full_name) -> Dict[str, Any]:
        response = self.session.post(
            f"{self.base_url}/transaction/initialize",
            json={
                'email': email,
                'currency': currency,
                'amount': str(amount),
                'callback': callback,
                'full_name': full_name,
                'reference': reference
            },
            headers=self._headers(),
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    @handle_gateway_errors
    def verify_transaction(self, reference) -> Dict[str, Any]:
        response = self.session.get(
            f"{self.base_url}/transaction/verify/{reference}",
            headers=self._headers(),
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

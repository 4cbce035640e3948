"""
Anchor certificate hashes with an external timestamping service.

Configured through ``CERTIFICATE_ANCHOR_URL`` and
``CERTIFICATE_ANCHOR_API_KEY``. Anchoring runs after the issuing
transaction commits and never affects issuance itself.
"""
import logging

import requests
from django.conf import settings
from django.utils import timezone

from .models import Certificate

logger = logging.getLogger(__name__)


class AnchorError(Exception):
    """Raised when the anchoring service rejects or cannot take a hash."""


def _headers():
    headers = {'Content-Type': 'application/json'}
    api_key = getattr(settings, 'CERTIFICATE_ANCHOR_API_KEY', '')
    if api_key:
        headers['Authorization'] = f'Bearer {api_key}'
    return headers


def submit_anchor(certificate):
    """
    Send the certificate hash to the anchoring service.

    Returns the transaction id reported by the service.

    Raises:
        AnchorError: on a network failure or a non-200 response
    """
    payload = {
        'hash': certificate.certificate_hash,
        'metadata': {
            'certificate_number': certificate.certificate_number,
            'student_id': certificate.student_id,
            'course_id': certificate.course_id,
            'issued_at': certificate.issued_at.isoformat(),
        }
    }
    try:
        response = requests.post(
            settings.CERTIFICATE_ANCHOR_URL,
            json=payload,
            headers=_headers(),
            timeout=30
        )
    except requests.exceptions.RequestException as e:
        raise AnchorError(f"Network error: {e}") from e

    if response.status_code != 200:
        raise AnchorError(f"Anchor API returned status {response.status_code}")

    result = response.json()
    transaction_id = result.get('transaction_id') or result.get('tx_hash')
    if not transaction_id:
        raise AnchorError("Anchor API response has no transaction id")
    return transaction_id


def anchor_certificate(certificate_id):
    certificate = Certificate.objects.filter(pk=certificate_id).first()
    if certificate is None or certificate.anchor_transaction_id:
        return None

    try:
        transaction_id = submit_anchor(certificate)
    except AnchorError:
        logger.exception("Anchoring failed for certificate %s", certificate.certificate_number)
        return None

    Certificate.objects.filter(pk=certificate.pk).update(
        anchor_transaction_id=transaction_id,
        anchored_at=timezone.now(),
    )
    return transaction_id

"""
Client ID
=========
Correlation key for one form submission and its generation job.

Format: <slug>-<epoch milliseconds>-<random base36>
    slug   — business name lowercased, non [a-z0-9] chars replaced by "-",
             truncated to 10 characters
    random — 6 lowercase alphanumeric characters

Uniqueness relies on the timestamp plus random suffix; it is not checked.
"""
import re
import secrets
import string
import time
from typing import Optional

from portal.core.constants import CLIENT_ID_SLUG_LENGTH, CLIENT_ID_RANDOM_LENGTH

_ALPHABET = string.ascii_lowercase + string.digits


def slugify_business_name(business_name: str) -> str:
    return re.sub(r"[^a-z0-9]", "-", business_name.lower())[:CLIENT_ID_SLUG_LENGTH]


def generate_client_id(business_name: str, now_ms: Optional[int] = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(CLIENT_ID_RANDOM_LENGTH))
    return f"{slugify_business_name(business_name)}-{timestamp}-{suffix}"

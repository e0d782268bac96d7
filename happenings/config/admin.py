"""Admin API key configuration for override write routes."""

import hmac
import os
from dataclasses import dataclass


@dataclass
class AdminAuthConfig:
    """Shared-secret settings for host/admin write endpoints."""

    api_key: str = ""

    def __post_init__(self):
        if not self.api_key:
            self.api_key = os.environ.get('ADMIN_API_KEY', '')


def verify_admin_auth(auth_header: str) -> bool:
    """Verify the Authorization header against ADMIN_API_KEY."""
    config = AdminAuthConfig()
    if not auth_header or not config.api_key:
        return False
    return hmac.compare_digest(auth_header, config.api_key)

"""
Kalshi RSA key-pair authentication.

Signs API requests using RSA-PSS with the user's private key.
"""

import base64
import time
from typing import Optional

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..config import config


class KalshiAuthError(RuntimeError):
    """Raised when requests cannot be signed."""


class KalshiAuth:
    """Handles RSA-PSS signing for Kalshi API authentication."""

    def __init__(self, key_id: str = "", private_key_pem: Optional[str] = None):
        self._key_id = key_id or config.kalshi.key_id
        pem = private_key_pem if private_key_pem is not None else config.kalshi.read_private_key_pem()
        self._private_key: Optional[rsa.RSAPrivateKey] = None

        if pem.strip():
            self._private_key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)

    @property
    def is_configured(self) -> bool:
        """Check if API credentials are configured."""
        return bool(self._key_id and self._private_key is not None)

    @property
    def key_id(self) -> str:
        return self._key_id

    def sign(self, timestamp_ms: str, method: str, path: str) -> str:
        """Base64 RSA-PSS/SHA256 signature over timestamp + METHOD + path."""
        message = timestamp_ms + method.upper() + path
        signature = self._private_key.sign(
            message.encode("utf-8"),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.DIGEST_LENGTH,
            ),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("utf-8")

    def get_auth_headers(self, method: str, path: str) -> dict[str, str]:
        """Generate signed authentication headers for a Kalshi API request.

        Args:
            method: HTTP method (GET, POST, DELETE, etc.)
            path: API path without base URL or query string
                  (e.g., /trade-api/v2/portfolio/balance)
        """
        if not self.is_configured:
            raise KalshiAuthError(
                "Kalshi auth not configured. Set KALSHI_API_KEY_ID and KALSHI_PRIVATE_KEY_PATH."
            )

        timestamp_ms = str(int(time.time() * 1000))
        return {
            "KALSHI-ACCESS-KEY": self._key_id,
            "KALSHI-ACCESS-TIMESTAMP": timestamp_ms,
            "KALSHI-ACCESS-SIGNATURE": self.sign(timestamp_ms, method, path),
            "Content-Type": "application/json",
        }

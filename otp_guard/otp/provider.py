"""
OTP Provider Interface
======================
The backend that actually dispatches the SMS/WhatsApp code. Opaque to
the retry engine: it either returns or raises.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from .models import OTPChannel


class OTPProvider(ABC):
    """
    Backend authentication provider.

    Implementations raise :class:`~otp_guard.errors.ProviderError` (with
    ``status_code`` when the backend answered over HTTP) or let transport
    exceptions propagate; the retry classifier handles both.
    """

    name: str = "base"

    @abstractmethod
    async def send(
        self,
        phone: str,
        channel: OTPChannel,
        create_user: bool,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        ...

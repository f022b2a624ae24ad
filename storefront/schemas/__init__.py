"""Public schema exports."""

from .audit import AuditEntryResponse, AuditEventRequest, AuditLogsResponse
from .checkout import CheckoutResponse, CreateCheckoutRequest, DeliveryResponse
from .misc import InboundEmailResponse, OAuthCallbackResponse
from .secrets import StoreSecretsRequest, StoreSecretsResponse

__all__ = [
    "AuditEntryResponse",
    "AuditEventRequest",
    "AuditLogsResponse",
    "CheckoutResponse",
    "CreateCheckoutRequest",
    "DeliveryResponse",
    "InboundEmailResponse",
    "OAuthCallbackResponse",
    "StoreSecretsRequest",
    "StoreSecretsResponse",
]

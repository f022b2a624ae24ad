"""Service layer exports."""

from .audit import AuditRecorder
from .checkout import CheckoutController
from .inbound import InboundReceiver
from .oauth_broker import OAuthBroker, OAuthProviderRegistry
from .secret_cipher import SecretCipher
from .secret_store import SecretStore
from .setup import SetupController

__all__ = [
    "AuditRecorder",
    "CheckoutController",
    "InboundReceiver",
    "OAuthBroker",
    "OAuthProviderRegistry",
    "SecretCipher",
    "SecretStore",
    "SetupController",
]

from .base import RemoteAPIError, RemoteServiceClient
from .exchange import ExchangeClient, ExchangeSharingPolicyClient
from .graph import GraphClient

__all__ = [
    "RemoteAPIError",
    "RemoteServiceClient",
    "ExchangeClient",
    "ExchangeSharingPolicyClient",
    "GraphClient",
]

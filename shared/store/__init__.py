"""
Data store access.

- client: StoreClient, bound to one credential and built per request.
- operations: typed descriptors for every remote procedure in use.
"""

from .client import Condition, StoreClient, StoreCredential
from .operations import RpcOperation

__all__ = [
    "Condition",
    "StoreClient",
    "StoreCredential",
    "RpcOperation",
]

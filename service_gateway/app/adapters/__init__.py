"""
Adapters package for the Gateway Service.

Contains clients for the collaborators a download decision depends on
(identity provider, Entitlements service, data store, URL signer). These
adapters encapsulate:

- Base URLs, credentials and request shapes
- Per-call timeouts
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls.
"""

from .auth_client import IdentityClient
from .entitlements_client import EntitlementsClient
from .bundle_client import Bundle, BundleClient
from .url_signer import BundleUrlSigner

__all__ = [
    "IdentityClient",
    "EntitlementsClient",
    "Bundle",
    "BundleClient",
    "BundleUrlSigner",
]

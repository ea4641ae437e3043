"""
Domain logic for the Gateway Service.

Holds the download link authorization flow, independent of the HTTP
transport that exposes it.
"""

from .download import (
    DenialReason, DownloadAuthorizer, DownloadDecision, DownloadLinkRequest, DownloadStage
)

__all__ = [
    "DenialReason",
    "DownloadAuthorizer",
    "DownloadDecision",
    "DownloadLinkRequest",
    "DownloadStage",
]

"""
Client SDK: local extraction plus a typed wrapper over the HTTP API.

Importing this package does not read server settings.
"""

from docuintel.client.api import BearerToken, ClientSession, DocuIntelClient, raise_for_error
from docuintel.client.workflow import UploadWorkflow, default_dispatcher

__all__ = [
    "BearerToken",
    "ClientSession",
    "DocuIntelClient",
    "raise_for_error",
    "UploadWorkflow",
    "default_dispatcher",
]

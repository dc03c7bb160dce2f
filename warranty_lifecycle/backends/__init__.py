"""
Warranty Backends Module
========================
Collaborators of the lookup engine: manufacturer APIs, batch endpoints,
credential providers, the device store and the platform writer.
"""

from .base import BatchWarrantyBackend, CredentialProvider, PlatformWriter, WarrantyBackend, WarrantyStore
from .api_client import HTTPBatchBackend, ManufacturerAPIBackend, PlatformUpdateWriter, WarrantyAPIClient
from .credentials import EnvCredentialProvider, StaticCredentialProvider
from .local_batch import LocalBatchBackend
from .storage import InMemoryWarrantyStore

__all__ = [
    "BatchWarrantyBackend",
    "CredentialProvider",
    "PlatformWriter",
    "WarrantyBackend",
    "WarrantyStore",
    "HTTPBatchBackend",
    "ManufacturerAPIBackend",
    "PlatformUpdateWriter",
    "WarrantyAPIClient",
    "EnvCredentialProvider",
    "StaticCredentialProvider",
    "LocalBatchBackend",
    "InMemoryWarrantyStore",
]

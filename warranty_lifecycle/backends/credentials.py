"""
Credential Providers

The credential bundle is read once per lookup run. Providers build it from
configuration or hand back a fixed bundle.
"""

import logging
from typing import Optional

from ..config import CredentialsConfig, config
from ..models import (
    DellCredentials,
    HPCredentials,
    LenovoCredentials,
    ManufacturerCredentials,
)


logger = logging.getLogger(__name__)


class StaticCredentialProvider:
    """Provider returning a fixed bundle."""

    def __init__(self, credentials: Optional[ManufacturerCredentials] = None):
        self.credentials = credentials or ManufacturerCredentials()

    def get_manufacturer_credentials(self) -> ManufacturerCredentials:
        return self.credentials


class EnvCredentialProvider:
    """Provider building the bundle from environment configuration."""

    def __init__(self, settings: Optional[CredentialsConfig] = None):
        self.settings = settings or config.credentials

    def get_manufacturer_credentials(self) -> ManufacturerCredentials:
        """
        Build the bundle from configured values.

        Manufacturers with incomplete settings are left out of the bundle;
        lookups for them fail with a missing-credentials error.
        """
        settings = self.settings
        dell = hp = lenovo = None

        if settings.dell_client_id and settings.dell_client_secret:
            dell = DellCredentials(
                client_id=settings.dell_client_id,
                client_secret=settings.dell_client_secret,
            )
        elif settings.dell_client_id or settings.dell_client_secret:
            logger.warning("Dell credentials are incomplete - need both client ID and secret")

        if settings.hp_api_key:
            hp = HPCredentials(api_key=settings.hp_api_key)
        if settings.lenovo_api_key:
            lenovo = LenovoCredentials(api_key=settings.lenovo_api_key)

        return ManufacturerCredentials(dell=dell, hp=hp, lenovo=lenovo)

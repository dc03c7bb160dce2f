"""
Manufacturer Credential Models

Credentials are a tagged union keyed by manufacturer. Each variant declares
its own required fields and is validated when the bundle is built.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..errors import MissingCredentialsError, UnsupportedManufacturerError
from .manufacturer import Manufacturer


class DellCredentials(BaseModel):
    """Dell TechDirect OAuth client credentials."""

    model_config = ConfigDict(frozen=True)

    manufacturer: Literal["dell"] = "dell"
    client_id: str = Field(min_length=1)
    client_secret: str = Field(min_length=1)

    def auth_headers(self) -> Dict[str, str]:
        return {"X-Client-Id": self.client_id, "X-Client-Secret": self.client_secret}


class HPCredentials(BaseModel):
    """HP warranty API key."""

    model_config = ConfigDict(frozen=True)

    manufacturer: Literal["hp"] = "hp"
    api_key: str = Field(min_length=1)

    def auth_headers(self) -> Dict[str, str]:
        return {"X-API-Key": self.api_key}


class LenovoCredentials(BaseModel):
    """Lenovo warranty API key."""

    model_config = ConfigDict(frozen=True)

    manufacturer: Literal["lenovo"] = "lenovo"
    api_key: str = Field(min_length=1)

    def auth_headers(self) -> Dict[str, str]:
        return {"X-API-Key": self.api_key}


Credentials = Annotated[
    Union[DellCredentials, HPCredentials, LenovoCredentials],
    Field(discriminator="manufacturer"),
]

_CREDENTIALS_ADAPTER = TypeAdapter(Credentials)

SUPPORTED_MANUFACTURERS = (Manufacturer.DELL, Manufacturer.HP, Manufacturer.LENOVO)


class ManufacturerCredentials(BaseModel):
    """
    Per-manufacturer credential bundle.

    Any variant may be absent. The bundle is an immutable snapshot for the
    duration of a lookup run.
    """

    model_config = ConfigDict(frozen=True)

    dell: Optional[DellCredentials] = None
    hp: Optional[HPCredentials] = None
    lenovo: Optional[LenovoCredentials] = None

    @classmethod
    def from_entries(cls, entries: List[Dict[str, Any]]) -> "ManufacturerCredentials":
        """
        Build a bundle from a list of tagged credential dicts.

        Example:
            [{"manufacturer": "dell", "client_id": "...", "client_secret": "..."},
             {"manufacturer": "hp", "api_key": "..."}]
        """
        variants = {}
        for entry in entries:
            credentials = _CREDENTIALS_ADAPTER.validate_python(entry)
            variants[credentials.manufacturer] = credentials
        return cls(**variants)

    def for_manufacturer(
        self, manufacturer: Optional[Manufacturer]
    ) -> Union[DellCredentials, HPCredentials, LenovoCredentials]:
        """
        Get the credential variant for a manufacturer.

        Raises:
            UnsupportedManufacturerError: No backend exists for the manufacturer
            MissingCredentialsError: The bundle has no entry for it
        """
        if manufacturer not in SUPPORTED_MANUFACTURERS:
            raise UnsupportedManufacturerError(
                manufacturer.value if manufacturer else None
            )

        credentials = getattr(self, manufacturer.value)
        if credentials is None:
            raise MissingCredentialsError(manufacturer.value)
        return credentials

    def configured(self) -> List[Manufacturer]:
        """Manufacturers that have credentials in this bundle."""
        return [m for m in SUPPORTED_MANUFACTURERS if getattr(self, m.value) is not None]

"""Factory for remote asset gateways."""

from ..config import RemoteStoreSettings
from .gateway_base import AssetGateway
from .gateway_cloudinary import CloudinaryGateway


def create_gateway(name: str, *, settings: RemoteStoreSettings) -> AssetGateway:
    """Instantiate gateway by backend name."""
    lower = name.lower()
    if lower == "cloudinary":
        return CloudinaryGateway(settings=settings)
    raise ValueError(f"Unsupported remote store '{name}'")

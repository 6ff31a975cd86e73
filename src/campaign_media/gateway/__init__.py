"""Remote asset gateways."""

from .classification import IMAGE_EXTENSIONS, VIDEO_EXTENSIONS, classify_kind
from .gateway_base import AssetGateway
from .gateway_factory import create_gateway

__all__ = [
    "AssetGateway",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "classify_kind",
    "create_gateway",
]

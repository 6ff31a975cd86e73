"""Abstract remote asset gateway definition."""

from abc import ABC, abstractmethod

from ..media.media_models import DerivedAsset, MediaKind, RemoteAsset, StagedFile


class AssetGateway(ABC):
    """Base interface for remote object/media stores."""

    @abstractmethod
    async def upload(self, staged: StagedFile, folder: str, kind: MediaKind) -> RemoteAsset:
        """Transfer ``staged`` to the remote store.

        Raises ``UploadError`` on any rejection; never touches the staged file.
        """

    @abstractmethod
    async def derive_thumbnail(self, asset: RemoteAsset) -> DerivedAsset:
        """Produce a thumbnail for a video asset; raises ``ThumbnailError``."""

    @abstractmethod
    async def delete(self, public_id: str, kind: MediaKind) -> None:
        """Remove an asset; deleting a missing identifier is not an error."""

    def variant_urls(self, asset: RemoteAsset) -> dict[str, str]:
        """Delivery URLs of resized variants computed on the fly."""
        return {}

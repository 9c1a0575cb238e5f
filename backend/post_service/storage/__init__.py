from .assets import AssetStore, LocalAssetStore, UploadedFile

__all__ = ["AssetStore", "LocalAssetStore", "UploadedFile"]

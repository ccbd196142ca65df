from typing import List, Optional

import httpx

from comicseed.config import Settings, settings as default_settings
from comicseed.core.errors import ConfigurationError
from comicseed.services.upload.base import UploadProvider
from comicseed.services.upload.cloudinary import CloudinaryProvider
from comicseed.services.upload.imagekit import ImageKitProvider
from comicseed.services.upload.local import LocalProvider

PROVIDERS = ("local", "imagekit", "cloudinary")


def get_upload_provider(settings: Optional[Settings] = None,
                        client: Optional[httpx.AsyncClient] = None) -> UploadProvider:
    """
    Build the provider named by settings.upload_provider.
    Raises ConfigurationError for an unknown name or missing credentials.
    """
    settings = settings or default_settings
    provider_type = (settings.upload_provider or "local").strip().lower()

    if provider_type == "local":
        return LocalProvider(settings.public_dir)

    if provider_type == "cloudinary":
        return CloudinaryProvider(
            settings.cloudinary_cloud_name,
            settings.cloudinary_api_key,
            settings.cloudinary_api_secret,
            client=client,
        )

    if provider_type == "imagekit":
        return ImageKitProvider(
            settings.imagekit_public_key,
            settings.imagekit_private_key,
            settings.imagekit_url_endpoint,
            client=client,
        )

    raise ConfigurationError(f"Unknown upload provider: {provider_type}")


def is_provider_available(provider_type: str, settings: Optional[Settings] = None) -> bool:
    settings = settings or default_settings

    if provider_type == "cloudinary":
        return bool(settings.cloudinary_cloud_name and settings.cloudinary_api_key and settings.cloudinary_api_secret)
    if provider_type == "imagekit":
        return bool(settings.imagekit_public_key and settings.imagekit_private_key and settings.imagekit_url_endpoint)
    if provider_type == "local":
        return True
    return False


def get_available_providers(settings: Optional[Settings] = None) -> List[str]:
    return [p for p in PROVIDERS if is_provider_available(p, settings)]

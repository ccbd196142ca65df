from comicseed.services.upload.base import UploadOptions, UploadProvider, UploadResult
from comicseed.services.upload.factory import get_available_providers, get_upload_provider, is_provider_available

__all__ = [
    'UploadOptions', 'UploadProvider', 'UploadResult',
    'get_upload_provider', 'is_provider_available', 'get_available_providers',
]

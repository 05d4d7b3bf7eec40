import logging
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union

import httpx

from .errors import ConfigurationError, UploadError

logger = logging.getLogger(__name__)

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"

# A path, raw bytes, or an open binary file, optionally as (filename, content).
ImageSource = Union[str, Path, bytes, BinaryIO, Tuple[str, Union[bytes, BinaryIO]]]


def _as_file_field(image: ImageSource):
    if isinstance(image, tuple):
        return image
    if isinstance(image, (str, Path)):
        path = Path(image)
        return (path.name, path.read_bytes())
    if isinstance(image, bytes):
        return ("upload", image)
    return (getattr(image, "name", "upload"), image)


class ImageUploader:
    """
    Unsigned image upload to Cloudinary.

    One multipart POST per image; the response's ``secure_url`` is returned
    verbatim. There is no retry and no content-type or size check.
    """

    def __init__(
        self,
        cloud_name: str,
        upload_preset: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def upload_url(self) -> str:
        return CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)

    async def upload(self, image: ImageSource) -> str:
        if not self.cloud_name or not self.upload_preset:
            raise ConfigurationError("Cloudinary configuration missing")

        response = await self._http.post(
            self.upload_url,
            data={"upload_preset": self.upload_preset},
            files={"file": _as_file_field(image)},
        )
        if response.is_error:
            try:
                message = response.json().get("error", {}).get("message")
            except ValueError:
                message = None
            logger.error(f"Upload failed with HTTP {response.status_code}: {message}")
            raise UploadError(message or "Upload failed")

        secure_url = response.json()["secure_url"]
        logger.debug(f"Uploaded image to {secure_url}")
        return secure_url

    async def aclose(self) -> None:
        await self._http.aclose()

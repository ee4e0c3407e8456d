"""
Media sideloading: fetch a Shopp image and register it as a WordPress attachment.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

import httpx
from pydantic import BaseModel

from shopp_migrator.core.catalog_writer import CatalogWriter
from shopp_migrator.core.woo_client import WooCommerceError
from shopp_migrator.core.wp_client import WordPressError
from shopp_migrator.schemas.legacy import LegacyImage

logger = logging.getLogger(__name__)


class SideloadResult(BaseModel):
    """Attachment id on success, or the reason the image could not be sideloaded."""
    attachment_id: Optional[int] = None
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.attachment_id is not None

    @classmethod
    def success(cls, attachment_id: int) -> "SideloadResult":
        return cls(attachment_id=attachment_id)

    @classmethod
    def failure(cls, url: str, cause: str) -> "SideloadResult":
        return cls(url=url, error=f"Could not sideload {url}: {cause}")


class MediaSideloader:
    """
    Downloads images into a temporary file and uploads them through the
    catalog writer. Failures are returned, not raised, and never retried.
    """

    def __init__(self, writer: CatalogWriter, http: Optional[httpx.Client] = None, timeout: float = 60.0):
        self.writer = writer
        self.http = http or httpx.Client(timeout=timeout, follow_redirects=True)

    def sideload(self, image: LegacyImage, product_id: int) -> SideloadResult:
        """
        Sideload one image as an attachment of product_id.

        Args:
            image: The Shopp image (source URL, file name, title, alt text)
            product_id: Post the attachment belongs to

        Returns:
            SideloadResult.success(attachment_id) or SideloadResult.failure(url, cause)
        """
        filename = image.filename or Path(httpx.URL(image.url).path).name or f"image-{image.id}"
        suffix = Path(filename).suffix or ".jpg"

        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp_file:
            tmp_path = tmp_file.name

        try:
            try:
                with self.http.stream("GET", image.url) as response:
                    if response.status_code != 200:
                        return SideloadResult.failure(image.url, f"HTTP {response.status_code}")
                    with open(tmp_path, "wb") as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
            except httpx.HTTPError as e:
                return SideloadResult.failure(image.url, str(e) or type(e).__name__)

            if os.path.getsize(tmp_path) == 0:
                return SideloadResult.failure(image.url, "empty response body")

            try:
                attachment_id = self.writer.upload_attachment(tmp_path, filename, product_id, title=image.title)
            except (WordPressError, WooCommerceError) as e:
                return SideloadResult.failure(image.url, str(e))

            if image.alt:
                try:
                    self.writer.set_attachment_alt(attachment_id, image.alt)
                except (WordPressError, WooCommerceError) as e:
                    # Half-registered attachments are removed with the failure
                    try:
                        self.writer.delete_attachment(attachment_id)
                    except (WordPressError, WooCommerceError) as cleanup_error:
                        logger.warning(f"Attachment {attachment_id} could not be deleted: {cleanup_error}")
                    return SideloadResult.failure(image.url, str(e))

            logger.debug(f"Image {image.id} of product {product_id} is attachment {attachment_id}")
            return SideloadResult.success(attachment_id)
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)

    def close(self):
        """Close HTTP client."""
        self.http.close()

"""
WordPress REST API client for media and plugin operations.
"""

import logging
import os
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class WordPressError(Exception):
    """Raised when a WordPress REST API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class WPClient:
    """
    Client for the WordPress REST API (wp/v2).
    """

    def __init__(
        self,
        store_url: str,
        username: str,
        app_password: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize WordPress client.

        Args:
            store_url: Store base URL
            username: WordPress username
            app_password: WordPress application password
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.store_url = store_url.rstrip("/")
        self.base = f"{self.store_url}/wp-json/wp/v2"
        self.username = username
        self.app_password = app_password
        self.timeout = timeout

        self.client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            auth=httpx.BasicAuth(username, app_password),
            headers={"Accept": "application/json"},
            transport=transport
        )

    def _check(self, response: httpx.Response, action: str) -> httpx.Response:
        if response.status_code in (200, 201):
            return response
        raise WordPressError(
            f"{action} failed: HTTP {response.status_code}: {response.text[:200]}",
            status_code=response.status_code
        )

    def upload_media(
        self,
        file_path: str,
        filename: Optional[str] = None,
        post_id: Optional[int] = None,
        title: Optional[str] = None
    ) -> Dict:
        """
        Upload a media file to WordPress.

        Args:
            file_path: Path to local file to upload
            filename: Name to store the file under (default: basename of file_path)
            post_id: Post the attachment belongs to
            title: Attachment title

        Returns:
            Dict with keys: {"id": int, "src": str, "alt": str}

        Raises:
            WordPressError: If the file is missing or the upload is rejected.
        """
        if not os.path.exists(file_path):
            raise WordPressError(f"File not found: {file_path}")

        url = f"{self.base}/media"
        file_name = filename or os.path.basename(file_path)

        with open(file_path, 'rb') as f:
            file_content = f.read()

        files = {'file': (file_name, file_content, self._get_content_type(file_name))}
        data = {}
        if post_id:
            data['post'] = str(post_id)
        if title:
            data['title'] = title

        try:
            r = self.client.post(url, files=files, data=data, timeout=120.0)
        except httpx.RequestError as e:
            raise WordPressError(f"Upload of {file_name} failed: {e}")

        result = self._check(r, f"Upload of {file_name}").json()
        return {
            "id": result.get("id"),
            "src": result.get("source_url", ""),
            "alt": result.get("alt_text", "")
        }

    def update_media_alt(self, media_id: int, alt_text: str) -> None:
        """Set the alt text of an attachment."""
        try:
            r = self.client.post(f"{self.base}/media/{media_id}", json={"alt_text": alt_text})
        except httpx.RequestError as e:
            raise WordPressError(f"Alt text update for media {media_id} failed: {e}")
        self._check(r, f"Alt text update for media {media_id}")

    def delete_media(
        self,
        media_id: int,
        retries: int = 2,
        backoff_seconds: float = 1.0
    ) -> Tuple[bool, str]:
        """
        Delete a media file (force delete) with retry logic.

        Args:
            media_id: Media ID to delete
            retries: Number of retries for server errors
            backoff_seconds: Backoff delay between retries

        Returns:
            (success, message)
            - success=True: Deleted successfully or media doesn't exist (404/410)
            - success=False: Real error (401, 403, or exhausted retries)
        """
        url = f"{self.base}/media/{media_id}"
        params = {"force": "true"}

        last_error = None

        for attempt in range(retries + 1):
            try:
                r = self.client.delete(url, params=params)
                status = r.status_code

                if status in (200, 204):
                    return True, f"Deleted media {media_id}"

                # Already gone
                if status in (404, 410):
                    return True, f"Media {media_id} does not exist"

                if status in (500, 502, 503, 504, 429):
                    last_error = f"HTTP {status}"
                    if attempt < retries:
                        time.sleep(backoff_seconds * (attempt + 1))
                        continue
                else:
                    return False, f"Failed to delete media {media_id}: {status} - {r.text[:200]}"

            except httpx.RequestError as e:
                last_error = f"Request error: {str(e)}"
                if attempt < retries:
                    time.sleep(backoff_seconds * (attempt + 1))
                    continue

        return False, f"Failed to delete media {media_id} after {retries + 1} attempts: {last_error}"

    def list_plugins(self) -> List[Dict]:
        """List installed plugins (requires the activate_plugins capability)."""
        try:
            r = self.client.get(f"{self.base}/plugins")
        except httpx.RequestError as e:
            raise WordPressError(f"Listing plugins failed: {e}")
        return self._check(r, "Listing plugins").json()

    def install_plugin(self, slug: str, activate: bool = True) -> Dict:
        """Install a plugin from the WordPress.org directory."""
        payload = {"slug": slug, "status": "active" if activate else "inactive"}
        try:
            r = self.client.post(f"{self.base}/plugins", json=payload, timeout=120.0)
        except httpx.RequestError as e:
            raise WordPressError(f"Installing {slug} failed: {e}")
        return self._check(r, f"Installing {slug}").json()

    def activate_plugin(self, plugin: str) -> Dict:
        """Activate an installed plugin ("directory/plugin-name", without .php)."""
        try:
            r = self.client.post(f"{self.base}/plugins/{plugin}", json={"status": "active"})
        except httpx.RequestError as e:
            raise WordPressError(f"Activating {plugin} failed: {e}")
        return self._check(r, f"Activating {plugin}").json()

    def _get_content_type(self, file_path: str) -> str:
        """Guess content type from file extension."""
        ext = Path(file_path).suffix.lower()
        content_types = {
            '.jpg': 'image/jpeg',
            '.jpeg': 'image/jpeg',
            '.png': 'image/png',
            '.gif': 'image/gif',
            '.webp': 'image/webp',
            '.svg': 'image/svg+xml',
        }
        return content_types.get(ext, 'application/octet-stream')

    def close(self):
        """Close HTTP client."""
        self.client.close()

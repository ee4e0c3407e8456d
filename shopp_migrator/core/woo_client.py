"""
WooCommerce REST API client with retry logic and rate limiting.
"""

import logging
import random
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import httpx

logger = logging.getLogger(__name__)


class WooCommerceError(Exception):
    """Base exception for WooCommerce API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class WooClient:
    """
    WooCommerce REST API v3 client.

    Supports:
    - WooCommerce API keys (consumer_key/consumer_secret)
    - WordPress application passwords (wp_username/wp_app_password)
    """

    def __init__(
        self,
        store_url: str,
        consumer_key: Optional[str] = None,
        consumer_secret: Optional[str] = None,
        wp_username: Optional[str] = None,
        wp_app_password: Optional[str] = None,
        rate_limit_rps: float = 5.0,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Initialize WooCommerce client.

        Args:
            store_url: Store base URL (e.g., https://example.com)
            consumer_key: WooCommerce consumer key
            consumer_secret: WooCommerce consumer secret
            wp_username: WordPress username (fallback)
            wp_app_password: WordPress application password (fallback)
            rate_limit_rps: Rate limit (requests per second)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.store_url = store_url.rstrip('/')
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.wp_username = wp_username
        self.wp_app_password = wp_app_password
        self.rate_limit_rps = rate_limit_rps
        self.timeout = timeout

        # Rate limiting state
        self._last_request_time = 0.0
        self._min_interval = 1.0 / rate_limit_rps if rate_limit_rps > 0 else 0

        # Determine auth method
        if consumer_key and consumer_secret:
            self.auth_method = "woocommerce"
        elif wp_username and wp_app_password:
            self.auth_method = "wordpress"
        else:
            raise ValueError("Must provide either (consumer_key, consumer_secret) or (wp_username, wp_app_password)")

        self.client = httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            transport=transport
        )

    def _get_auth(self) -> httpx.Auth:
        """Get authentication for requests."""
        if self.auth_method == "woocommerce":
            return httpx.BasicAuth(self.consumer_key, self.consumer_secret)
        else:
            # WordPress application password
            return httpx.BasicAuth(self.wp_username, self.wp_app_password)

    def _wait_for_rate_limit(self):
        """Wait if needed to respect rate limit."""
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict] = None,
        json_data: Optional[Dict] = None,
        max_retries: int = 5,
        initial_delay: float = 2.0,
        backoff_factor: float = 2.0
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to store_url)
            params: Query parameters
            json_data: JSON body
            max_retries: Maximum retry attempts
            initial_delay: Initial retry delay in seconds
            backoff_factor: Backoff multiplier

        Returns:
            httpx.Response

        Raises:
            WooCommerceError: If request fails after retries
        """
        url = urljoin(self.store_url + '/', endpoint.lstrip('/'))
        auth = self._get_auth()

        last_error = None

        for attempt in range(max_retries + 1):
            self._wait_for_rate_limit()

            try:
                response = self.client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_data,
                    auth=auth
                )

                if response.status_code in (200, 201, 204):
                    return response

                # Non-retryable errors
                if response.status_code in (400, 401, 403, 404, 422):
                    raise WooCommerceError(
                        f"{method} {endpoint}: HTTP {response.status_code}: {response.text[:200]}",
                        status_code=response.status_code
                    )

                # Retryable errors (429, 500, 502, 503, 504)
                if response.status_code in (429, 500, 502, 503, 504):
                    last_error = f"HTTP {response.status_code}"
                    if attempt < max_retries:
                        delay = min(
                            initial_delay * (backoff_factor ** attempt),
                            60.0  # Max 60s delay
                        )
                        delay += random.uniform(0, 0.4)  # Jitter
                        logger.debug(f"{method} {endpoint}: {last_error}, retrying in {delay:.1f}s")
                        time.sleep(delay)
                        continue
                    raise WooCommerceError(
                        f"{method} {endpoint}: HTTP {response.status_code} after {max_retries} retries: {response.text[:200]}",
                        status_code=response.status_code
                    )

                raise WooCommerceError(
                    f"{method} {endpoint}: unexpected HTTP {response.status_code}",
                    status_code=response.status_code
                )

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {str(e)}"
                if attempt < max_retries:
                    time.sleep(min(initial_delay * (backoff_factor ** attempt), 60.0))
                    continue
                raise WooCommerceError(f"{method} {endpoint}: timeout after {max_retries} retries: {e}")

            except httpx.RequestError as e:
                last_error = f"Request error: {str(e)}"
                if attempt < max_retries:
                    time.sleep(min(initial_delay * (backoff_factor ** attempt), 60.0))
                    continue
                raise WooCommerceError(f"{method} {endpoint}: request error after {max_retries} retries: {e}")

        # Should not reach here
        raise WooCommerceError(f"{method} {endpoint}: request failed after {max_retries} retries: {last_error}")

    def get_product(self, product_id: int) -> Dict[str, Any]:
        """
        Get product by ID.

        Args:
            product_id: Product ID

        Returns:
            Product dict
        """
        response = self._request("GET", f"/wp-json/wc/v3/products/{product_id}")
        return response.json()

    def update_product(self, product_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update product fields.

        Args:
            product_id: Product ID
            data: Update data (may include "type" to change the product class)

        Returns:
            Updated product dict
        """
        response = self._request("PUT", f"/wp-json/wc/v3/products/{product_id}", json_data=data)
        return response.json()

    def create_variation(self, product_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a variation under a product.

        Args:
            product_id: Parent product ID
            data: Variation data

        Returns:
            Created variation dict
        """
        response = self._request("POST", f"/wp-json/wc/v3/products/{product_id}/variations", json_data=data)
        return response.json()

    def delete_variation(self, product_id: int, variation_id: int, force: bool = True) -> bool:
        """
        Delete a variation.

        Args:
            product_id: Parent product ID
            variation_id: Variation ID
            force: Force delete (skip trash)

        Returns:
            True if successful
        """
        params = {"force": "true"} if force else {}
        response = self._request(
            "DELETE",
            f"/wp-json/wc/v3/products/{product_id}/variations/{variation_id}",
            params=params
        )
        return response.status_code in (200, 201, 204)

    def get_product_variations(self, product_id: int) -> List[Dict]:
        """
        Get all variations of a variable product.

        Args:
            product_id: Parent product ID

        Returns:
            List of variation dicts
        """
        all_variations = []
        page = 1
        per_page = 100

        while True:
            params = {
                "per_page": per_page,
                "page": page
            }
            response = self._request("GET", f"/wp-json/wc/v3/products/{product_id}/variations", params=params)
            items = response.json()

            if not items:
                break

            all_variations.extend(items)

            total_pages = int(response.headers.get("X-WP-TotalPages", 1))
            if page >= total_pages or len(items) < per_page:
                break
            page += 1

        return all_variations

    def close(self):
        """Close HTTP client."""
        self.client.close()

"""
Backend REST API client.

Async client for the admin application's backend: orders, catalog,
customers, tenant settings, loyalty ledger and the FBR submission proxy.
Handles session management, retries of idempotent reads and translation
of error responses into the application's exception hierarchy.
"""

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Dict, List, Optional

import aiohttp
from aiohttp import ClientTimeout

from order_editor.core.config import Settings, get_settings
from order_editor.core.logging_config import log_api_call
from order_editor.domain.models.loyalty import CustomerPoints, LoyaltySettings
from order_editor.domain.models.parties import Customer, SellerInfo
from order_editor.utils.error_handler import (
    FBR_ERROR_STEPS,
    AppException,
    BackendAPIException,
    ErrorCode,
    FbrSubmissionException,
)

logger = logging.getLogger(__name__)

CUSTOMER_USER_TYPES = {"customer", None, ""}

DEFAULT_RETRY_AFTER = 2
MAX_RETRY_AFTER = 60

# Proxies answer with HTML pages; keep error messages readable
MAX_ERROR_TEXT = 200


def decode_body(text: str) -> Any:
    """
    Decode a response body.

    Returns:
        Any: The parsed JSON, an empty dict for an empty body, or the stripped
        text itself when the body is not JSON
    """
    if not text or not text.strip():
        return {}
    try:
        return json.loads(text)
    except ValueError:
        return text.strip()[:MAX_ERROR_TEXT]


def parse_retry_after(value: Optional[str]) -> int:
    """Seconds to wait from a ``Retry-After`` header (delta seconds or HTTP date)."""
    if not value:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = int(value)
    except ValueError:
        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return DEFAULT_RETRY_AFTER
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        seconds = int((retry_at - datetime.now(timezone.utc)).total_seconds())
    return min(max(seconds, 0), MAX_RETRY_AFTER)


def extract_item_errors(body: Dict[str, Any]) -> List[str]:
    """Per-item messages from ``fbrError.response.validationResponse.invoiceStatuses``."""
    fbr_error = body.get("fbrError") or {}
    response = fbr_error.get("response") or {}
    validation = response.get("validationResponse") or {}
    statuses = validation.get("invoiceStatuses") or []
    return [f"Item {status.get('itemSNo')}: {status['error']}" for status in statuses if status.get("error")]


def raise_for_response(status: int, body: Any, endpoint: str) -> None:
    """
    Raise the matching exception for a non-2xx backend response.

    Raises:
        FbrSubmissionException: When the body carries an FBR ``step``
        BackendAPIException: For every other failure
    """
    body = body if isinstance(body, dict) else {"error": str(body or "")}
    step = body.get("step")

    if step in FBR_ERROR_STEPS:
        raise FbrSubmissionException(
            message=body.get("error") or "FBR Digital Invoice submission failed",
            step=step,
            item_errors=extract_item_errors(body),
            fbr_response=body.get("fbrError"),
        )

    message = body.get("error") or body.get("message") or f"HTTP {status}"
    raise BackendAPIException(
        message=f"{endpoint} failed: {message}",
        api_response_code=status,
        endpoint=endpoint,
        rate_limited=status == 429,
    )


def extract_list(data: Any, key: str) -> List[Dict[str, Any]]:
    """Accept both bare arrays and ``{key: [...]}`` envelopes."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        value = data.get(key) or data.get("data") or []
        return value if isinstance(value, list) else []
    return []


def unwrap_product(row: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a ``{product, category, subcategory, supplier}`` catalog row."""
    if not isinstance(row.get("product"), dict):
        return dict(row)
    product = dict(row["product"])
    for key in ("category", "subcategory", "supplier"):
        if key in row:
            product[key] = row[key]
    return product


class BackendAPIClient:
    """
    Client for the backend REST API.

    Example:
        async with BackendAPIClient() as client:
            order = await client.get_order("ord_1")
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.BACKEND_API_URL
        self.max_retries = max(1, self.settings.BACKEND_MAX_RETRIES)
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(f"Initialized backend API client for {self.base_url}")

    async def initialize(self):
        """
        Create the HTTP session.

        Raises:
            BackendAPIException: If the session cannot be created
        """
        if self.session:
            return
        try:
            timeout = ClientTimeout(
                total=self.settings.BACKEND_TIMEOUT_SECONDS,
                connect=self.settings.BACKEND_CONNECT_TIMEOUT_SECONDS,
            )
            connector = aiohttp.TCPConnector(limit=50, limit_per_host=20)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers=self.settings.get_backend_headers(),
            )
            logger.info("✅ Backend API client initialized")
        except Exception as e:
            logger.error(f"❌ Failed to initialize backend API client: {e}")
            raise BackendAPIException(
                f"Client initialization failed: {str(e)}",
                error_code=ErrorCode.BACKEND_CONNECTION_FAILED,
            ) from e

    async def close(self):
        if self.session:
            await self.session.close()
            self.session = None
            logger.info("Backend API client closed")

    async def __aenter__(self) -> "BackendAPIClient":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request and return the decoded JSON body.

        GET requests are retried on network errors, unexpected failures and
        429 responses with exponential backoff. Writes are attempted once.
        Non-JSON error bodies (proxy pages) become the error message.

        Raises:
            BackendAPIException: On network failure or error status
            FbrSubmissionException: When the backend reports an FBR failure
        """
        if not self.session:
            await self.initialize()

        url = f"{self.base_url}{path}"
        attempts = self.max_retries if method == "GET" else 1
        last_exception: Optional[BackendAPIException] = None

        for attempt in range(attempts):
            start = time.time()
            try:
                async with self.session.request(method, url, params=params, json=json) as response:
                    duration = time.time() - start
                    log_api_call(method, path, response.status, duration)

                    if response.status == 429 and attempt < attempts - 1:
                        retry_after = parse_retry_after(response.headers.get("Retry-After"))
                        logger.warning(f"Rate limit exceeded, waiting {retry_after}s (attempt {attempt + 1})")
                        await asyncio.sleep(retry_after)
                        continue

                    body = decode_body(await response.text())

                    if response.status >= 400:
                        raise_for_response(response.status, body, f"{method} {path}")

                    if isinstance(body, str):
                        raise BackendAPIException(
                            f"{method} {path} returned a non-JSON response",
                            api_response_code=response.status,
                            endpoint=path,
                        )
                    return body

            except AppException:
                raise

            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                last_exception = BackendAPIException(
                    f"Network error on {method} {path}: {str(e)}",
                    endpoint=path,
                    error_code=ErrorCode.BACKEND_CONNECTION_FAILED,
                )
                if attempt < attempts - 1:
                    wait_time = min(2**attempt, 10)
                    logger.warning(f"Network error, retrying in {wait_time}s (attempt {attempt + 1})")
                    await asyncio.sleep(wait_time)
                    continue

            except Exception as e:
                last_exception = BackendAPIException(f"Unexpected error on {method} {path}: {str(e)}", endpoint=path)
                if attempt < attempts - 1:
                    wait_time = min(2**attempt, 10)
                    logger.warning(f"Error calling {method} {path}, retrying in {wait_time}s (attempt {attempt + 1})")
                    await asyncio.sleep(wait_time)
                    continue

        raise last_exception or BackendAPIException(f"{method} {path} failed after retries", endpoint=path)

    # === ORDERS ===

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/orders/{order_id}")

    async def update_order(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Save the full order.

        Returns:
            Dict: ``orderId``, ``orderNumber`` and, when an invoice was issued, ``fbrInvoiceNumber``
        """
        result = await self._request("PUT", f"/orders/{order_id}", json=payload)
        return {
            "orderId": result.get("orderId") or order_id,
            "orderNumber": result.get("orderNumber"),
            "fbrInvoiceNumber": result.get("fbrInvoiceNumber"),
        }

    async def duplicate_order(self, order_id: str) -> Dict[str, Any]:
        result = await self._request("POST", f"/orders/{order_id}/duplicate")
        return {"newOrderId": result.get("newOrderId"), "newOrderNumber": result.get("newOrderNumber")}

    # === CATALOG ===

    async def list_products(self) -> List[Dict[str, Any]]:
        """Catalog products, unwrapped from their ``{product, category, ...}`` rows."""
        rows = extract_list(await self._request("GET", "/products"), "products")
        return [unwrap_product(row) for row in rows]

    async def find_products_by_sku(self, sku: str) -> List[Dict[str, Any]]:
        return extract_list(await self._request("GET", "/products", params={"sku": sku}), "products")

    async def get_product_variants(self, product_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/product-variants", params={"productId": product_id})
        return [row.get("variant") or row for row in extract_list(data, "variants")]

    async def get_product_addons(self, product_id: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/product-addons", params={"productId": product_id})
        return extract_list(data, "addons")

    async def load_product(self, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Catalog product with its variants or addons attached.

        Variable products carry ``variants`` and group products carry
        ``addons``. A failed variant or addon read leaves that list empty.

        Args:
            product_id: Product to load

        Returns:
            Optional[Dict]: The product, or None if the catalog has no such id
        """
        product = next((p for p in await self.list_products() if str(p.get("id")) == str(product_id)), None)
        if product is None:
            return None

        product_type = product.get("productType")
        if product_type == "variable":
            try:
                product["variants"] = await self.get_product_variants(product_id)
            except BackendAPIException as e:
                logger.warning(f"⚠️ Could not load variants for product {product_id}: {e.message}")
                product["variants"] = []
        elif product_type == "group":
            try:
                product["addons"] = await self.get_product_addons(product_id)
            except BackendAPIException as e:
                logger.warning(f"⚠️ Could not load addons for product {product_id}: {e.message}")
                product["addons"] = []
        return product

    # === CUSTOMERS & LOYALTY ===

    async def list_customers(self) -> List[Customer]:
        """Customer directory, restricted to customer accounts (or untyped users)."""
        users = extract_list(await self._request("GET", "/users"), "users")
        return [Customer.from_api(user) for user in users if user.get("userType") in CUSTOMER_USER_TYPES]

    async def get_loyalty_settings(self, defaults: Optional[LoyaltySettings] = None) -> LoyaltySettings:
        data = await self._request("GET", "/settings/loyalty")
        if not data.get("success"):
            return defaults or LoyaltySettings()
        return LoyaltySettings.from_api(data, defaults)

    async def get_customer_points(self, user_id: str) -> CustomerPoints:
        data = await self._request("GET", "/loyalty/points", params={"userId": user_id})
        if not data.get("success"):
            return CustomerPoints()
        return CustomerPoints.from_api(data)

    # === SELLER & FBR ===

    async def get_seller_info(self) -> SellerInfo:
        return SellerInfo.from_api(await self._request("GET", "/seller-info"))

    async def get_fbr_settings(self) -> Dict[str, Any]:
        data = await self._request("GET", "/settings/fbr")
        return data if data.get("success") else {}

    async def load_seller(self) -> SellerInfo:
        """Seller record overlaid with the tenant FBR settings."""
        seller = await self.get_seller_info()
        return seller.merge_fbr_settings(await self.get_fbr_settings())

    async def submit_fbr_preview(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Ask the backend to map an order to an FBR invoice without submitting it.

        Returns:
            Dict: The mapped invoice (``fbrInvoice`` when wrapped)
        """
        result = await self._request("POST", "/fbr/submit", params={"preview": "true"}, json=payload)
        return result.get("fbrInvoice") or result

    def __repr__(self):
        return f"BackendAPIClient(base_url='{self.base_url}', initialized={self.session is not None})"

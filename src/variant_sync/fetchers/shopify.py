import logging
import time

import requests

from variant_sync.models import snapshot_from_payload

logger = logging.getLogger(__name__)

UA = "VariantSync/1.0"
PRODUCT_FIELDS = "id,title,body_html,product_type,vendor,tags,variants,options"


class ShopifyError(RuntimeError):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ShopifyClient:
    """Minimal Shopify Admin REST client: product read/write with pacing and retries."""

    def __init__(self, shop_name: str, access_token: str, api_version: str = "2024-01",
                 timeout: int = 30, requests_per_second: float = 2, retries: int = 2,
                 retry_delay: float = 1.0, session=None):
        if not shop_name:
            raise ValueError("shop_name is required")
        shop = shop_name.strip().rstrip("/")
        if not shop.startswith("http"):
            shop = f"https://{shop}"
        self.base = f"{shop}/admin/api/{api_version}"
        self.timeout = timeout
        self.retries = int(retries)
        self.retry_delay = float(retry_delay)
        self.min_interval = 1.0 / requests_per_second if requests_per_second else 0.0
        self._last_request = 0.0

        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": UA,
            "X-Shopify-Access-Token": access_token or "",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(cls, shop_cfg: dict, access_token: str, shop_name: str = None):
        return cls(
            shop_name=shop_name or shop_cfg.get("name", ""),
            access_token=access_token,
            api_version=shop_cfg.get("api_version", "2024-01"),
            timeout=int(shop_cfg.get("request_timeout_sec", 30)),
            requests_per_second=float(shop_cfg.get("requests_per_second", 2)),
            retries=int(shop_cfg.get("retries", 2)),
            retry_delay=float(shop_cfg.get("retry_delay_sec", 1.0)),
        )

    def _pace(self):
        wait = self.min_interval - (time.monotonic() - self._last_request)
        if wait > 0:
            time.sleep(wait)
        self._last_request = time.monotonic()

    def _request_json(self, method, path, **kwargs):
        url = f"{self.base}/{path.lstrip('/')}"
        last_err = None

        for attempt in range(self.retries + 1):
            self._pace()
            try:
                r = self.session.request(method, url, timeout=self.timeout, **kwargs)
                r.raise_for_status()
                return r.json() if r.content else {}
            except requests.HTTPError as e:
                last_err = e
                status = e.response.status_code if e.response is not None else None
                # client errors other than throttling will not get better on retry
                if status is not None and 400 <= status < 500 and status != 429:
                    break
            except requests.RequestException as e:
                last_err = e
            logger.warning("%s %s failed (attempt %d/%d): %s",
                           method, path, attempt + 1, self.retries + 1, last_err)
            if attempt < self.retries:
                time.sleep(self.retry_delay)

        status = None
        if isinstance(last_err, requests.HTTPError) and last_err.response is not None:
            status = last_err.response.status_code
        raise ShopifyError(f"{method} {path} failed: {last_err}", status_code=status)

    def get_product(self, product_id):
        data = self._request_json("GET", f"products/{product_id}.json")
        product = data.get("product")
        if not product:
            raise ShopifyError(f"Product {product_id} not found", status_code=404)
        snap = snapshot_from_payload(product)
        logger.info("Retrieved product: %s (ID: %s)", snap.title, product_id)
        return snap

    def list_products(self, limit: int = 50, since_id=None):
        params = {"limit": limit, "fields": PRODUCT_FIELDS}
        if since_id:
            params["since_id"] = since_id
        data = self._request_json("GET", "products.json", params=params)
        products = [snapshot_from_payload(p) for p in data.get("products", []) or []]
        logger.info("Retrieved %d products", len(products))
        return products

    def update_description(self, product_id, html: str):
        payload = {"product": {"id": product_id, "body_html": html}}
        data = self._request_json("PUT", f"products/{product_id}.json", json=payload)
        snap = snapshot_from_payload(data.get("product") or {})
        logger.info("Updated description for product: %s (ID: %s)", snap.title, product_id)
        return snap

    def update_variant_barcode(self, variant_id, barcode):
        payload = {"variant": {"id": variant_id, "barcode": barcode}}
        data = self._request_json("PUT", f"variants/{variant_id}.json", json=payload)
        logger.info("Set barcode %s on variant %s", barcode, variant_id)
        return data.get("variant") or {}

    def create_webhook(self, topic, address):
        payload = {"webhook": {"topic": topic, "address": address, "format": "json"}}
        data = self._request_json("POST", "webhooks.json", json=payload)
        logger.info("Created webhook for topic: %s", topic)
        return data.get("webhook") or {}

    def list_webhooks(self):
        return self._request_json("GET", "webhooks.json").get("webhooks", []) or []

    def delete_webhook(self, webhook_id):
        self._request_json("DELETE", f"webhooks/{webhook_id}.json")
        logger.info("Deleted webhook: %s", webhook_id)

    def test_connection(self):
        try:
            shop = self._request_json("GET", "shop.json").get("shop", {})
            logger.info("Shopify API connection successful")
            return {"success": True, "shop": shop.get("name")}
        except ShopifyError as e:
            logger.error("Shopify API connection failed: %s", e)
            return {"success": False, "error": str(e)}

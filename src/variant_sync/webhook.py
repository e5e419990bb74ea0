import base64
import hashlib
import hmac
import logging
import threading

from variant_sync.barcodes import DEFAULT_PREFIX, missing_barcodes
from variant_sync.description import has_ai_description
from variant_sync.diff import compare_snapshots
from variant_sync.fetchers.shopify import ShopifyError
from variant_sync.formatting import format_variants_for_description
from variant_sync.models import snapshot_from_payload
from variant_sync.patch import update_variants_bullet

logger = logging.getLogger(__name__)

DEFAULT_MARKER = "Verified by Gemmologist Reza Piroznia"
MIN_BODY_CHARS = 100
BARCODE_TOPICS = ("products/create", "products/update")


class ProcessingRegistry:
    """Thread-safe set of product ids currently being updated."""

    def __init__(self):
        self._lock = threading.Lock()
        self._active = set()

    def acquire(self, product_id):
        with self._lock:
            if product_id in self._active:
                return False
            self._active.add(product_id)
            return True

    def release(self, product_id):
        with self._lock:
            self._active.discard(product_id)

    def active(self):
        with self._lock:
            return sorted(self._active, key=str)


_registry = ProcessingRegistry()


def verify_signature(body: bytes, hmac_header, secret) -> bool:
    if not secret:
        logger.warning("No webhook secret configured, skipping signature verification")
        return True
    if not hmac_header:
        return False
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest)
    return hmac.compare_digest(expected, hmac_header.encode("utf-8", "ignore"))


def handle_product_create(payload: dict) -> dict:
    product_id = payload.get("id")
    logger.info("Product created: %s (ID: %s)", payload.get("title"), product_id)
    body = payload.get("body_html") or ""
    if len(body) < MIN_BODY_CHARS:
        return {"action": "generate_description", "product_id": product_id}
    return {"action": "skip", "reason": "Product already has description"}


def handle_product_update(payload: dict, client, marker=DEFAULT_MARKER) -> dict:
    incoming = snapshot_from_payload(payload)
    logger.info("Product updated: %s (ID: %s)", incoming.title, incoming.id)

    if not has_ai_description(incoming.description_html, marker):
        return {
            "action": "generate_description",
            "product_id": incoming.id,
            "reason": "Product needs description",
        }

    try:
        current = client.get_product(incoming.id)
    except ShopifyError as e:
        # can't tell what changed, re-render rather than leave stale copy
        logger.error("Could not fetch product %s for variant comparison: %s", incoming.id, e)
        return {"action": "update_variants", "product_id": incoming.id, "reason": "error"}

    change = compare_snapshots(current, incoming)
    if change.has_changes:
        return {
            "action": "update_variants",
            "product_id": incoming.id,
            "reason": change.kind,
            "detail": change.detail,
        }

    logger.info("No variant changes detected for product %s", incoming.id)
    return {
        "action": "skip",
        "reason": "Product already has AI-generated description and no variant changes",
    }


def handle_product_delete(payload: dict) -> dict:
    logger.info("Product deleted: %s (ID: %s)", payload.get("title"), payload.get("id"))
    return {"action": "deleted", "product_id": payload.get("id")}


def process_webhook(topic, payload, client, marker=DEFAULT_MARKER):
    """Decide what a product webhook calls for, without acting on it."""
    logger.info("Processing webhook: %s", topic)
    if topic == "products/create":
        return handle_product_create(payload)
    if topic == "products/update":
        return handle_product_update(payload, client, marker=marker)
    if topic == "products/delete":
        return handle_product_delete(payload)
    logger.warning("Unknown webhook topic: %s", topic)
    return None


def update_variants_in_description(client, product_id, marker=DEFAULT_MARKER, registry=None):
    """Rewrite only the variants bullet of a product's stored description.

    Result ``status`` is ``success``, ``skipped`` or ``error``. The description
    is written back only when the patched HTML differs from the stored one.
    """
    registry = registry or _registry
    if not registry.acquire(product_id):
        logger.warning("Product %s is already being processed, skipping", product_id)
        return {"product_id": product_id, "status": "skipped", "reason": "Update already in progress"}

    try:
        product = client.get_product(product_id)
        html = product.description_html

        if not has_ai_description(html, marker):
            logger.warning("Product %s does not have AI-generated description, "
                           "skipping variant update", product_id)
            return {"product_id": product_id, "status": "skipped",
                    "reason": "No AI-generated description found"}

        formatted = format_variants_for_description(product.variants, product.options)
        updated = update_variants_bullet(html, formatted)

        if updated == html:
            logger.info("Variants bullet already up to date for product %s", product_id)
            return {"product_id": product_id, "status": "success",
                    "updated": False, "variants": formatted}

        client.update_description(product_id, updated)
        logger.info("Updated variants in description for product %s: %s", product_id, formatted)
        return {"product_id": product_id, "status": "success",
                "updated": True, "variants": formatted}
    except Exception as e:
        logger.error("Error updating variants in description for product %s: %s", product_id, e)
        return {"product_id": product_id, "status": "error", "error": str(e)}
    finally:
        registry.release(product_id)


def add_missing_barcodes(client, product, prefix=DEFAULT_PREFIX, ean13=False):
    try:
        assigned = missing_barcodes(product, prefix=prefix, ean13=ean13)
        if not assigned:
            logger.info("Product %s already has barcodes for all variants", product.id)
            return {"product_id": product.id, "status": "skipped", "assigned": {}}

        for variant_id, barcode in assigned.items():
            client.update_variant_barcode(variant_id, barcode)
        logger.info("Generated %d barcodes for product %s", len(assigned), product.id)
        return {"product_id": product.id, "status": "success", "assigned": assigned}
    except Exception as e:
        logger.error("Error generating barcodes for product %s: %s", product.id, e)
        return {"product_id": product.id, "status": "error", "error": str(e)}


def handle_webhook(topic, payload, client, marker=DEFAULT_MARKER, barcodes=None, registry=None):
    """Decide and act on one product webhook.

    ``barcodes`` is the ``barcodes`` config section; when enabled, variants
    without a barcode get one on create and update, whatever else happens.
    """
    decision = process_webhook(topic, payload, client, marker=marker)
    result = {"topic": topic, "product_id": payload.get("id"), "decision": decision}

    if decision and decision.get("action") == "update_variants":
        result["variants"] = update_variants_in_description(
            client, decision["product_id"], marker=marker, registry=registry,
        )

    barcodes = barcodes or {}
    if topic in BARCODE_TOPICS and barcodes.get("enabled"):
        result["barcodes"] = add_missing_barcodes(
            client,
            snapshot_from_payload(payload),
            prefix=barcodes.get("prefix") or DEFAULT_PREFIX,
            ean13=barcodes.get("format") == "ean13",
        )

    return result

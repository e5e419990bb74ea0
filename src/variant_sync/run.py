import argparse
import json
import logging
import os
import sys
from datetime import datetime, timezone

import yaml

from variant_sync.description import count_words, has_ai_description, validate_description
from variant_sync.fetchers.shopify import ShopifyClient, ShopifyError
from variant_sync.formatting import (
    format_variants_for_description,
    inventory_status,
    validate_variants,
    variant_info_for_prompt,
    variant_summary,
)
from variant_sync.report import build_summary
from variant_sync.storage import load_latest_report, prune_reports, save_report
from variant_sync.webhook import (
    DEFAULT_MARKER,
    add_missing_barcodes,
    handle_webhook,
    update_variants_in_description,
    verify_signature,
)

logger = logging.getLogger(__name__)

ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CONFIG = os.path.join(ROOT, "config.yaml")


def utc_now_iso():
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def load_config(path=DEFAULT_CONFIG):
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def make_client(cfg):
    shop_cfg = cfg.get("shop", {}) or {}
    return ShopifyClient.from_config(
        shop_cfg,
        access_token=os.environ.get("SHOPIFY_ACCESS_TOKEN", ""),
        shop_name=os.environ.get("SHOPIFY_SHOP_NAME") or shop_cfg.get("name"),
    )


def webhook_secret():
    return os.environ.get("SHOPIFY_WEBHOOK_SECRET", "")


def report_dir(cfg):
    path = (cfg.get("sync", {}) or {}).get("report_dir", "reports")
    if not os.path.isabs(path):
        path = os.path.join(ROOT, path)
    return path


def update_products(client, product_ids, marker):
    results = []
    for pid in product_ids:
        results.append(update_variants_in_description(client, pid, marker=marker))
    return results


def update_batch(client, limit, marker):
    try:
        products = client.list_products(limit=limit)
    except ShopifyError as e:
        logger.error("Could not list products: %s", e)
        return [{"product_id": None, "status": "error", "error": str(e)}]

    results = []
    for product in products:
        if not has_ai_description(product.description_html, marker):
            results.append({
                "product_id": product.id,
                "status": "skipped",
                "reason": "No AI-generated description found",
            })
            continue
        results.append(update_variants_in_description(client, product.id, marker=marker))
    return results


def receive_webhook(client, topic, body, hmac_header, secret, marker, barcodes=None):
    """Verify and handle one raw webhook delivery. Returns None when the signature is bad."""
    if not verify_signature(body, hmac_header, secret):
        logger.warning("Invalid webhook signature for topic %s", topic)
        return None
    payload = json.loads(body.decode("utf-8"))
    return handle_webhook(topic, payload, client, marker=marker, barcodes=barcodes)


def inspect_product(product, marker):
    ok, variant_errors = validate_variants(product)
    desc_ok, desc_errors = validate_description(product.description_html, marker)
    return {
        "product_id": product.id,
        "title": product.title,
        "variants": format_variants_for_description(product.variants, product.options),
        "summary": variant_summary(product),
        "prompt": variant_info_for_prompt(product),
        "inventory": inventory_status(product),
        "variants_valid": ok,
        "variant_errors": variant_errors,
        "description_valid": desc_ok,
        "description_errors": desc_errors,
        "description_words": count_words(product.description_html),
    }


def write_run_report(cfg, results, run_id):
    sync_cfg = cfg.get("sync", {}) or {}
    out_dir = report_dir(cfg)
    summary = build_summary(results, run_id=run_id, time_utc=utc_now_iso())
    save_report(out_dir, {**summary, "results": results})
    prune_reports(out_dir, keep=int(sync_cfg.get("keep_reports", 40)))
    return summary


def build_parser():
    parser = argparse.ArgumentParser(
        prog="variant-sync",
        description="Sync the Available Variants bullet of product descriptions",
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG, help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_update = sub.add_parser("update", help="Update the variants bullet for specific products")
    p_update.add_argument("product_ids", nargs="+", help="Shopify product ids")

    p_batch = sub.add_parser("batch", help="Update every product that has an AI description")
    p_batch.add_argument("--limit", type=int, default=None, help="Max products to list")

    p_inspect = sub.add_parser("inspect", help="Show variant and description diagnostics")
    p_inspect.add_argument("product_id")

    p_barcodes = sub.add_parser("barcodes", help="Assign barcodes to variants that lack one")
    p_barcodes.add_argument("product_id")
    p_barcodes.add_argument("--prefix", default=None)
    p_barcodes.add_argument("--ean13", action="store_true", help="Use EAN-13 instead of the custom format")

    p_webhook = sub.add_parser("webhook", help="Handle one webhook delivery saved to a file")
    p_webhook.add_argument("--topic", required=True, help="X-Shopify-Topic, e.g. products/update")
    p_webhook.add_argument("--body", required=True, help="File with the raw request body")
    p_webhook.add_argument("--hmac", default=None, help="X-Shopify-Hmac-Sha256 header value")

    p_hooks = sub.add_parser("webhooks", help="Manage webhook registrations")
    p_hooks.add_argument("hook_action", choices=["list", "create", "delete"])
    p_hooks.add_argument("--topic", default=None)
    p_hooks.add_argument("--address", default=None)
    p_hooks.add_argument("--id", dest="webhook_id", default=None)

    sub.add_parser("check", help="Test the Shopify API connection")
    return parser


def _print_json(data):
    print(json.dumps(data, ensure_ascii=False, indent=2, default=str))


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = load_config(args.config)
    client = make_client(cfg)
    sync_cfg = cfg.get("sync", {}) or {}
    barcode_cfg = cfg.get("barcodes", {}) or {}
    marker = sync_cfg.get("ai_marker") or DEFAULT_MARKER

    if args.command == "check":
        result = client.test_connection()
        print("Connection:", "ok" if result["success"] else f"failed ({result.get('error')})")
        last = load_latest_report(report_dir(cfg))
        if last:
            print("Last run:", last.get("run_id"), "Totals:", last.get("totals"))
        return 0 if result["success"] else 1

    if args.command == "inspect":
        _print_json(inspect_product(client.get_product(args.product_id), marker))
        return 0

    if args.command == "barcodes":
        result = add_missing_barcodes(
            client,
            client.get_product(args.product_id),
            prefix=args.prefix or barcode_cfg.get("prefix") or "GEM",
            ean13=args.ean13 or barcode_cfg.get("format") == "ean13",
        )
        _print_json(result)
        return 1 if result["status"] == "error" else 0

    if args.command == "webhook":
        with open(args.body, "rb") as f:
            body = f.read()
        result = receive_webhook(client, args.topic, body, args.hmac, webhook_secret(),
                                 marker, barcodes=barcode_cfg)
        if result is None:
            print("Invalid webhook signature")
            return 1
        _print_json(result)
        return 0

    if args.command == "webhooks":
        if args.hook_action == "list":
            _print_json(client.list_webhooks())
        elif args.hook_action == "create":
            _print_json(client.create_webhook(args.topic, args.address))
        else:
            client.delete_webhook(args.webhook_id)
        return 0

    run_id = utc_now_iso().replace(":", "-")

    if args.command == "update":
        results = update_products(client, args.product_ids, marker)
    else:
        limit = args.limit or int(sync_cfg.get("batch_limit", 50))
        results = update_batch(client, limit, marker)

    summary = write_run_report(cfg, results, run_id)
    totals = summary["totals"]
    print("Done. Products:", summary["products"], "Updated:", summary["updated"],
          "Skipped:", totals["skipped"], "Errors:", totals["error"])
    return 1 if totals["error"] else 0


if __name__ == "__main__":
    sys.exit(main())

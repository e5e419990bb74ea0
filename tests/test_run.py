"""Tests for variant_sync.run."""

import base64
import hashlib
import hmac
import json
import os
from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from variant_sync.fetchers.shopify import ShopifyError
from variant_sync.run import inspect_product, load_config, main, update_batch, webhook_secret
from variant_sync.storage import save_report

CONFIG = """shop:
  name: "example.myshopify.com"
  retries: 0
sync:
  ai_marker: "Verified by Gemmologist Reza Piroznia"
  report_dir: "{report_dir}"
  keep_reports: 5
"""


def _write_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG.format(report_dir=tmp_path / "reports"), encoding="utf-8")
    return str(path)


class TestLoadConfig:
    def test_reads_yaml(self, tmp_path) -> None:
        cfg = load_config(_write_config(tmp_path))
        assert cfg["shop"]["name"] == "example.myshopify.com"
        assert cfg["sync"]["keep_reports"] == 5


class TestUpdateBatch:
    def test_skips_products_without_ai_description(self, ring, marker) -> None:
        client = MagicMock()
        plain = replace(ring, id=202, description_html="<p>supplier copy</p>")
        client.list_products.return_value = [ring, plain]
        client.get_product.return_value = ring
        results = update_batch(client, 10, marker)
        assert [r["status"] for r in results] == ["success", "skipped"]
        client.get_product.assert_called_once_with(ring.id)

    def test_listing_failure_is_one_error(self, marker) -> None:
        client = MagicMock()
        client.list_products.side_effect = ShopifyError("down")
        assert update_batch(client, 10, marker) == [{"product_id": None, "status": "error", "error": "down"}]


class TestMain:
    def test_update_writes_report(self, tmp_path, ring, capsys) -> None:
        client = MagicMock()
        client.get_product.return_value = ring
        with patch("variant_sync.run.make_client", return_value=client):
            code = main(["--config", _write_config(tmp_path), "update", "101"])

        assert code == 0
        assert "Done. Products: 1" in capsys.readouterr().out
        reports = os.listdir(tmp_path / "reports")
        assert len(reports) == 1
        with open(tmp_path / "reports" / reports[0], encoding="utf-8") as f:
            report = json.load(f)
        assert report["totals"]["success"] == 1
        assert report["results"][0]["product_id"] == "101"

    def test_check_failure_exit_code(self, tmp_path) -> None:
        client = MagicMock()
        client.test_connection.return_value = {"success": False, "error": "403"}
        with patch("variant_sync.run.make_client", return_value=client):
            assert main(["--config", _write_config(tmp_path), "check"]) == 1

    def test_check_prints_last_run(self, tmp_path, capsys) -> None:
        client = MagicMock()
        client.test_connection.return_value = {"success": True}
        config = _write_config(tmp_path)
        save_report(str(tmp_path / "reports"), {"run_id": "r1", "totals": {"success": 2}})
        with patch("variant_sync.run.make_client", return_value=client):
            assert main(["--config", config, "check"]) == 0
        out = capsys.readouterr().out
        assert "Connection: ok" in out
        assert "Last run: r1" in out

    def test_inspect_prints_diagnostics(self, tmp_path, ring, capsys) -> None:
        client = MagicMock()
        client.get_product.return_value = ring
        with patch("variant_sync.run.make_client", return_value=client):
            assert main(["--config", _write_config(tmp_path), "inspect", "101"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["summary"] == "Available in Size: Small, Medium; Material: Gold"
        assert data["description_valid"] is True

    def test_barcodes_command(self, tmp_path, ring, capsys) -> None:
        client = MagicMock()
        client.get_product.return_value = ring
        with patch("variant_sync.run.make_client", return_value=client):
            assert main(["--config", _write_config(tmp_path), "barcodes", "101", "--prefix", "TST"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["status"] == "success"
        assert client.update_variant_barcode.call_count == 2

    def test_webhooks_list(self, tmp_path, capsys) -> None:
        client = MagicMock()
        client.list_webhooks.return_value = [{"id": 7, "topic": "products/update"}]
        with patch("variant_sync.run.make_client", return_value=client):
            assert main(["--config", _write_config(tmp_path), "webhooks", "list"]) == 0
        assert json.loads(capsys.readouterr().out) == [{"id": 7, "topic": "products/update"}]


class TestInspectProduct:
    def test_reports_every_diagnostic(self, ring, marker) -> None:
        info = inspect_product(ring, marker)
        assert info["variants"] == "Size: Small, Material: Gold; Size: Medium, Material: Gold"
        assert info["prompt"] == {
            "variant_info": "Size: Small, Medium; Material: Gold",
            "variant_types": ["Size", "Material"],
            "variant_count": 2,
        }
        assert info["inventory"] == {"total": 2, "in_stock": 0, "out_of_stock": 2, "low_stock": 0}
        assert info["variants_valid"] is True
        assert info["description_errors"] == []
        assert info["description_words"] > 0

    def test_flags_problems(self, make_snapshot, marker) -> None:
        info = inspect_product(make_snapshot(description="<p>plain</p>"), marker)
        assert info["summary"] == "Available in standard version"
        assert info["description_valid"] is False
        assert "Missing verification marker" in info["description_errors"]


def _sign(body, secret):
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


class TestWebhookCommand:
    @pytest.fixture
    def body_file(self, tmp_path, ring):
        body = json.dumps({
            "id": ring.id,
            "title": ring.title,
            "body_html": ring.description_html,
            "options": [{"name": o.name, "values": list(o.values)} for o in ring.options],
            "variants": [
                {"id": v.id, "title": v.title, "option1": v.option1, "option2": v.option2}
                for v in ring.variants
            ],
        }).encode("utf-8")
        path = tmp_path / "body.json"
        path.write_bytes(body)
        return path

    def test_secret_read_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SHOPIFY_WEBHOOK_SECRET", "s3cret")
        assert webhook_secret() == "s3cret"
        monkeypatch.delenv("SHOPIFY_WEBHOOK_SECRET")
        assert webhook_secret() == ""

    def test_bad_signature_is_rejected(self, tmp_path, body_file, monkeypatch, capsys) -> None:
        monkeypatch.setenv("SHOPIFY_WEBHOOK_SECRET", "s3cret")
        client = MagicMock()
        with patch("variant_sync.run.make_client", return_value=client):
            code = main(["--config", _write_config(tmp_path), "webhook", "--topic", "products/update",
                         "--body", str(body_file), "--hmac", _sign(body_file.read_bytes(), "other")])
        assert code == 1
        assert "Invalid webhook signature" in capsys.readouterr().out
        client.get_product.assert_not_called()
        client.update_description.assert_not_called()

    def test_signed_update_rewrites_description(self, tmp_path, ring, body_file, monkeypatch, capsys) -> None:
        monkeypatch.setenv("SHOPIFY_WEBHOOK_SECRET", "s3cret")
        client = MagicMock()
        client.get_product.side_effect = [replace(ring, variants=ring.variants[:1]), ring]
        with patch("variant_sync.run.make_client", return_value=client):
            code = main(["--config", _write_config(tmp_path), "webhook", "--topic", "products/update",
                         "--body", str(body_file), "--hmac", _sign(body_file.read_bytes(), "s3cret")])
        assert code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["decision"]["action"] == "update_variants"
        client.update_description.assert_called_once()

import json
import logging
import sys

from storefront.exceptions import InventoryNetworkError
from storefront.log import JSONFormatter, log_sync_event, setup_logging


class TestStructuredLogging:
    def test_json_formatter(self):
        fmt = JSONFormatter()
        record = logging.LogRecord("storefront.test", logging.INFO, "", 0, "fetch_%s", ("updated",), None)
        record.data = {"product_id": "1"}

        parsed = json.loads(fmt.format(record))

        assert parsed["msg"] == "fetch_updated"
        assert parsed["level"] == "INFO"
        assert parsed["data"] == {"product_id": "1"}

    def test_json_formatter_includes_error(self):
        fmt = JSONFormatter()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("storefront", logging.ERROR, "", 0, "failed", (), sys.exc_info())

        assert json.loads(fmt.format(record))["error"] == "boom"

    def test_json_formatter_carries_trace_of_inventory_errors(self):
        fmt = JSONFormatter()
        error = InventoryNetworkError("connection refused", trace_id="abc123")
        record = logging.LogRecord(
            "storefront.sync.cart", logging.WARNING, "", 0, "refresh failed", (), (type(error), error, None)
        )

        parsed = json.loads(fmt.format(record))

        assert parsed["error"] == "connection refused"
        assert parsed["error_type"] == "network"
        assert parsed["trace_id"] == "abc123"

    def test_setup_logging_writes_jsonl(self, tmp_path):
        logger = setup_logging(log_dir=tmp_path, level="debug")
        try:
            assert logger.name == "storefront"
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2

            log_sync_event("cart_clamped", product_id="7", max_quantity=3)
            for handler in logger.handlers:
                handler.flush()

            lines = (tmp_path / "storefront.jsonl").read_text(encoding="utf-8").splitlines()
            entry = json.loads(lines[-1])
            assert entry["logger"] == "storefront.sync"
            assert entry["msg"] == "cart_clamped"
            assert entry["data"] == {"product_id": "7", "max_quantity": 3}
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
                handler.close()

    def test_unknown_level_name_falls_back_to_info(self):
        logger = setup_logging(level="chatty")
        try:
            assert logger.level == logging.INFO
        finally:
            logger.handlers.clear()

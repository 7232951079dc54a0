import pytest

from storefront.config import refresh_settings


@pytest.fixture(autouse=True)
def _isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setenv("CART_STORAGE_PATH", str(tmp_path / "cart.json"))
    monkeypatch.setenv("INVENTORY_BASE_URL", "http://inventory.test/api")
    monkeypatch.setenv("PRODUCT_CACHE_MAX_AGE_SECONDS", "0")
    monkeypatch.setenv("BATCH_WINDOW_SECONDS", "0")
    monkeypatch.setenv("MOCK_RESHUFFLE_SECONDS", "0")
    monkeypatch.setenv("MOCK_DELAY_MAX_SECONDS", "0")
    monkeypatch.setenv("MOCK_CONFLICT_RATE", "0")
    refresh_settings()
    yield
    refresh_settings()

from .main import create_app
from .repository import InventoryRepository

__all__ = ["InventoryRepository", "create_app"]

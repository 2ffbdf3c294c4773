"""State management (inventory and ledger files)"""
from .inventory import load_inventory, save_inventory
from .ledger import Ledger

__all__ = ["load_inventory", "save_inventory", "Ledger"]

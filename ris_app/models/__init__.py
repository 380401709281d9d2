from ris_app.models.inventory.category import Category
from ris_app.models.inventory.item import Item
from ris_app.models.inventory.stock_transaction import StockTransaction
from ris_app.models.requisition.request import Request
from ris_app.models.requisition.request_line import RequestLine
from ris_app.models.requisition.ris_counter import RisCounter


__all__ = [
    "Category",
    "Item",
    "StockTransaction",
    "Request",
    "RequestLine",
    "RisCounter",
]

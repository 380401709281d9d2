from fastapi import APIRouter
from ris_app.api.v1.endpoints.inventory import items, transactions
from ris_app.api.v1.endpoints.requisition import requests, ris
from ris_app.api.v1.endpoints.reports import excel

api_router = APIRouter()

# Inventory routes
api_router.include_router(items.router, prefix="/items", tags=["Inventory"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["Inventory"])

# Requisition routes
api_router.include_router(requests.router, prefix="/requests", tags=["Requisition"])
api_router.include_router(ris.router, prefix="/ris", tags=["RIS"])

# Report routes
api_router.include_router(excel.router, prefix="/excel", tags=["Reports"])

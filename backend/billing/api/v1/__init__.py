"""
API v1 Routes
Progetto: Gestionale Fatture (Fatturazione QR Svizzera)

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from billing.api.v1 import documents, invoices, payments, quotes

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(documents.router)
api_v1_router.include_router(invoices.router)
api_v1_router.include_router(quotes.router)
api_v1_router.include_router(payments.router)

# Esportazione
__all__ = ["api_v1_router"]

"""
Karma Ledger HTTP service.

FastAPI application over a SQLite-backed KarmaLedger. Run with:
    uvicorn karma_api.main:app
"""

# backend/pos_ledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pos_ledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos_ledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # "current": revenue uses the product's cost price at stats time (deleted products earn 0)
    # "snapshot": revenue uses the cost price captured on the sale item
    REVENUE_COST_BASIS = os.environ.get("REVENUE_COST_BASIS", "current")

    RECENT_SALES_LIMIT = int(os.environ.get("RECENT_SALES_LIMIT", "5"))

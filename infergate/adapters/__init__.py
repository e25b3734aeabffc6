"""Adapters for integrating the gateway with storage and web frameworks."""

from .sqlalchemy_ledger import SQLAlchemyRequestLedger, create_schema

__all__ = ["SQLAlchemyRequestLedger", "create_schema"]

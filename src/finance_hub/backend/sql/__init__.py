"""Local SQL data gateway."""
from finance_hub.backend.sql.gateway import SqlGateway

__all__ = ["SqlGateway"]

"""Transactions, newest first by transaction date."""
from finance_hub.db import TransactionStatus, TransactionType
from finance_hub.schemas import (TransactionCreate, TransactionRead,
                                 TransactionUpdate)
from finance_hub.services.resource_service import ListFilters, ResourceService


class TransactionFilters(ListFilters):
    """``start``/``end`` bound the transaction date (inclusive)."""

    type: TransactionType | None = None
    status: TransactionStatus | None = None
    source: str | None = None
    connection_id: str | None = None


class TransactionService(ResourceService[TransactionRead]):
    table = "transactions"
    label = "Transaction"
    read_model = TransactionRead
    create_model = TransactionCreate
    update_model = TransactionUpdate
    filters_model = TransactionFilters
    recency_field = "date"

from beanie import Document, Indexed
from pydantic import Field
from typing import Annotated
from uuid import uuid4
from datetime import datetime
from enum import Enum


class CashDirection(str, Enum):
    IN = "IN"
    OUT = "OUT"


class CashTransaction(Document):
    """Manual drawer movement (float top-up, petty cash). Not linked to sales."""
    id: str = Field(default_factory=lambda: uuid4().hex)
    type: CashDirection
    amount: float = Field(..., gt=0)
    reason: str
    timestamp: datetime
    date: Annotated[str, Indexed()]

    class Settings:
        name = "cash_logs"

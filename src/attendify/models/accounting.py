"""Accounting entity - deposit bookkeeping for one event.

Amounts are integer drops stored as strings, so values beyond 64 bits survive
every database backend unchanged. Always go through the int helpers.
"""

from typing import Optional

from sqlmodel import Field, SQLModel


class Accounting(SQLModel, table=True):
    """Deposit, fee and refund bookkeeping, one row per event."""

    __tablename__ = "accountings"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="events.id", unique=True, index=True)
    deposit_address: str = Field(max_length=64)
    deposit_reserve_value: str = Field(default="0", max_length=40)
    deposit_fee_value: str = Field(default="0", max_length=40)
    deposit_tx_hash: Optional[str] = Field(default=None, max_length=64, unique=True)
    refund_value: Optional[str] = Field(default=None, max_length=40)
    refund_tx_hash: Optional[str] = Field(default=None, max_length=64)
    accumulated_tx_fees: str = Field(default="0", max_length=40)

    @property
    def reserve_drops(self) -> int:
        return int(self.deposit_reserve_value)

    @property
    def fee_drops(self) -> int:
        return int(self.deposit_fee_value)

    @property
    def tx_fee_drops(self) -> int:
        return int(self.accumulated_tx_fees)

    def add_tx_fee(self, drops: int) -> None:
        """Add network fees spent on behalf of the event."""
        if drops < 0:
            raise ValueError("Transaction fee cannot be negative")
        self.accumulated_tx_fees = str(self.tx_fee_drops + drops)

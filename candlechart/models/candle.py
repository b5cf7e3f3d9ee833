"""Candle (OHLCV) data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Candle(BaseModel):
    """Represents a single OHLCV candle with synthetic option volumes.

    ``put_volume`` and ``call_volume`` are sampled independently from
    ``volume`` and are not expected to add up to it.
    """

    timestamp: datetime = Field(..., description="Candle timestamp")
    open: float = Field(..., gt=0, description="Opening price")
    high: float = Field(..., gt=0, description="High price")
    low: float = Field(..., gt=0, description="Low price")
    close: float = Field(..., gt=0, description="Closing price")
    volume: int = Field(..., ge=0, description="Trading volume")
    put_volume: Optional[int] = Field(
        None, ge=0, alias="putVolume", description="Synthetic put option volume"
    )
    call_volume: Optional[int] = Field(
        None, ge=0, alias="callVolume", description="Synthetic call option volume"
    )

    model_config = {"frozen": True, "populate_by_name": True, "allow_inf_nan": False}

    @model_validator(mode="after")
    def _check_price_range(self) -> "Candle":
        if self.low > min(self.open, self.close):
            raise ValueError(
                f"low {self.low} is above min(open, close) {min(self.open, self.close)}"
            )
        if self.high < max(self.open, self.close):
            raise ValueError(
                f"high {self.high} is below max(open, close) {max(self.open, self.close)}"
            )
        return self

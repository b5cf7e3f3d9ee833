"""Result envelope returned to the presentation layer."""

from typing import Any, Iterable, Literal

from pydantic import BaseModel, Field, model_validator

from candlechart.models.candle import Candle


class ResultEnvelope(BaseModel):
    """Uniform ``{status, data}`` wrapper for a candle series.

    ``data`` is ordered newest first. An ``"error"`` envelope never
    carries candles.
    """

    status: Literal["success", "error"] = Field(..., description="Outcome of the fetch")
    data: tuple[Candle, ...] = Field(default=(), description="Candles, newest first")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _error_has_no_data(self) -> "ResultEnvelope":
        if self.status == "error" and self.data:
            raise ValueError("error envelope must not carry candles")
        return self

    @classmethod
    def success(cls, candles: Iterable[Candle]) -> "ResultEnvelope":
        """Build a success envelope from candles (newest first)."""
        return cls(status="success", data=tuple(candles))

    @classmethod
    def error(cls) -> "ResultEnvelope":
        """Build the empty error envelope."""
        return cls(status="error", data=())

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def to_dict(self) -> dict[str, Any]:
        """Render the JSON shape consumed by chart front-ends."""
        return {
            "status": self.status,
            "data": [
                candle.model_dump(mode="json", by_alias=True, exclude_none=True)
                for candle in self.data
            ],
        }

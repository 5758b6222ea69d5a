"""
Cart Configuration

Number formatting and storage settings shared by every cart instance.
Values come from the environment with safe defaults.
"""
import os

from pydantic import BaseModel, Field


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class CartConfig(BaseModel):
    """Formatting configuration passed to line items and totals."""
    decimals: int = Field(default=2, ge=0)
    dec_point: str = "."
    thousands_sep: str = ","
    format_numbers: bool = False
    storage_prefix: str = "cart:"

    class Config:
        extra = "ignore"

    @classmethod
    def from_env(cls) -> "CartConfig":
        """
        Build configuration from environment variables.

        Reads CART_DECIMALS, CART_DEC_POINT, CART_THOUSANDS_SEP,
        CART_FORMAT_NUMBERS and CART_STORAGE_PREFIX.
        """
        return cls(
            decimals=int(os.environ.get("CART_DECIMALS", "2")),
            dec_point=os.environ.get("CART_DEC_POINT", "."),
            thousands_sep=os.environ.get("CART_THOUSANDS_SEP", ","),
            format_numbers=_env_bool("CART_FORMAT_NUMBERS", False),
            storage_prefix=os.environ.get("CART_STORAGE_PREFIX", "cart:"),
        )

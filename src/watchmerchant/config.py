"""Runtime settings for watchmerchant, read once from the environment."""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping

from .errors import InvalidConfigError

# Bundled reference data (products, brands, coupons, shipping rates)
# Can be overridden via WATCHMERCHANT_DATA_DIR environment variable
DEFAULT_DATA_DIR = Path(__file__).parent / "data"

DEFAULT_CART_TTL_MINUTES = 120
DEFAULT_TAX_RATE_PERCENT = Decimal("8")
DEFAULT_PORT = 3001
DEFAULT_MANDATE_TTL_MINUTES = 15
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidConfigError(name, raw, "an integer")
    if value < minimum:
        raise InvalidConfigError(name, raw, f"an integer >= {minimum}")
    return value


def _decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise InvalidConfigError(name, raw, "a number")
    if not value.is_finite():
        raise InvalidConfigError(name, raw, "a finite number")
    if value < 0:
        raise InvalidConfigError(name, raw, "a non-negative number")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise InvalidConfigError(name, raw, "true or false")


@dataclass(frozen=True)
class Settings:
    """Process-wide parameters. Held fixed for the lifetime of the app."""

    cart_ttl_minutes: int = DEFAULT_CART_TTL_MINUTES
    tax_rate_percent: Decimal = DEFAULT_TAX_RATE_PERCENT
    data_dir: Path = DEFAULT_DATA_DIR
    cart_sweep_limit: int = 0  # 0 = sweep every expired cart
    strict_order_transitions: bool = False
    cors_origin: str = "*"
    port: int = DEFAULT_PORT
    base_url: str = f"http://localhost:{DEFAULT_PORT}"
    merchant_contract_address: str = ZERO_ADDRESS
    mandate_ttl_minutes: int = DEFAULT_MANDATE_TTL_MINUTES

    @property
    def tax_rate(self) -> Decimal:
        """Tax rate as a fraction (8 -> 0.08)."""
        return self.tax_rate_percent / 100

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ (for testing).

        Raises:
            InvalidConfigError: If a variable is present but unparseable.
        """
        env = os.environ if env is None else env
        port = _int(env, "PORT", DEFAULT_PORT, minimum=1)
        return cls(
            cart_ttl_minutes=_int(env, "CART_TTL_MINUTES", DEFAULT_CART_TTL_MINUTES, minimum=1),
            tax_rate_percent=_decimal(env, "TAX_RATE", DEFAULT_TAX_RATE_PERCENT),
            data_dir=Path(env.get("WATCHMERCHANT_DATA_DIR", DEFAULT_DATA_DIR)),
            cart_sweep_limit=_int(env, "CART_SWEEP_LIMIT", 0),
            strict_order_transitions=_bool(env, "STRICT_ORDER_TRANSITIONS", False),
            cors_origin=env.get("CORS_ORIGIN", "*"),
            port=port,
            base_url=env.get("BASE_URL", f"http://localhost:{port}"),
            merchant_contract_address=env.get("MERCHANT_CONTRACT_ADDRESS", ZERO_ADDRESS),
            mandate_ttl_minutes=_int(
                env, "MANDATE_TTL_MINUTES", DEFAULT_MANDATE_TTL_MINUTES, minimum=1
            ),
        )

"""Mocked payment mandate flow.

Builds EIP-712 shaped typed data for a cart and accepts any signature
presented against it. No signature is actually verified.
"""

import json
import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog

from .cart_store import CartStore
from .errors import CartNotFoundError, MissingPaymentParamsError, MissingWalletError

logger = structlog.get_logger(__name__)

MERCHANT_ID = "watch-merchant"
MERCHANT_NAME = "Watch Merchant"
SEPOLIA_CHAIN_ID = 11155111
BNB_CHAIN_ID = 56
WEI_PER_UNIT = Decimal(10) ** 18

MANDATE_TYPES = {
    "PurchaseMandate": [
        {"name": "cartId", "type": "string"},
        {"name": "merchantId", "type": "string"},
        {"name": "amount", "type": "uint256"},
        {"name": "currency", "type": "string"},
        {"name": "items", "type": "string"},
        {"name": "timestamp", "type": "uint256"},
        {"name": "expiresAt", "type": "uint256"},
    ],
}


class MandateService:
    def __init__(
        self,
        carts: CartStore,
        contract_address: str,
        ttl_minutes: int = 15,
    ):
        self.carts = carts
        self.contract_address = contract_address
        self.ttl_seconds = ttl_minutes * 60

    def create_mandate(
        self,
        cart_id: str,
        wallet_address: str | None,
        network: str | None = None,
    ) -> dict[str, Any]:
        """
        Build the typed-data mandate a wallet would sign for this cart.

        Raises:
            MissingWalletError: If no wallet address is given.
            CartNotFoundError: If the cart doesn't exist or has expired.
        """
        if not wallet_address:
            raise MissingWalletError()

        cart = self.carts.require(cart_id)
        total = self.carts.total(cart)

        domain = {
            "name": MERCHANT_NAME,
            "version": "1",
            "chainId": SEPOLIA_CHAIN_ID if network == "sepolia" else BNB_CHAIN_ID,
            "verifyingContract": self.contract_address,
        }

        now = int(time.time())
        expires_at = now + self.ttl_seconds
        message = {
            "cartId": cart.cart_id,
            "merchantId": MERCHANT_ID,
            "amount": str(int(total * WEI_PER_UNIT)),
            "currency": "USD",
            "items": json.dumps(
                [{"sku": i.sku, "qty": i.quantity} for i in cart.items],
                separators=(",", ":"),
            ),
            "timestamp": now,
            "expiresAt": expires_at,
        }
        cart_hash = "0x" + json.dumps(message, separators=(",", ":")).encode("utf-8").hex()[:64]

        logger.info("Mandate created", cart_id=cart_id, network=network or "bnb")
        return {
            "cartHash": cart_hash,
            "amount": str(total),
            "merchantAddress": self.contract_address,
            "walletAddress": wallet_address,
            "items": [item.to_dict() for item in cart.items],
            "typedData": {
                "domain": domain,
                "types": MANDATE_TYPES,
                "primaryType": "PurchaseMandate",
                "message": message,
            },
            "expiresAt": datetime.fromtimestamp(expires_at, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
        }

    def verify_payment(
        self,
        cart_id: str,
        signature: str | None,
        mandate_hash: str | None,
    ) -> dict[str, Any]:
        """
        Accept a signed mandate and clear the cart.

        Raises:
            MissingPaymentParamsError: If signature or mandate hash is empty.
            CartNotFoundError: If the cart doesn't exist or has expired.
        """
        if not signature or not mandate_hash:
            raise MissingPaymentParamsError()

        # Only one verification can take the cart
        if self.carts.pop_live(cart_id) is None:
            raise CartNotFoundError(cart_id)

        order_id = f"order_{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        transaction_hash = "0x" + secrets.token_hex(32)

        logger.info("Payment accepted", cart_id=cart_id, order_id=order_id)
        return {
            "accepted": True,
            "orderId": order_id,
            "transactionHash": transaction_hash,
            "message": "Payment verified and order created successfully",
        }

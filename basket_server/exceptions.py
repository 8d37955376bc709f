"""Basket exceptions."""

from typing import Any


ERROR_MESSAGES = {
    "EMPTY_CART": "Your cart is empty",
    "ADDRESS_REQUIRED": "Please enter street, house number, and district",
    "INVALID_PAYMENT_METHOD": "Payment method must be 'cash' or 'card'",
}


class CheckoutError(Exception):
    """
    Structured exception for checkout input that cannot be submitted.

    Usage:
        try:
            place_order(client, cart, address)
        except CheckoutError as e:
            if e.code == "EMPTY_CART":
                print(e.message)
    """

    def __init__(self, code: str, message: str = "", **data: Any) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "data": self.data,
        }

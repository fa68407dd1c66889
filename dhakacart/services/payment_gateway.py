"""Payment gateway port and the simulated adapter.

Order and payment logic depend only on ``PaymentGateway.authorize``; the
simulated adapter stands in for bKash / card processors until a real
integration is plugged in.
"""

import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict

from dhakacart.utils.settings import PAYMENT_DELAY_SCALE


@dataclass(frozen=True)
class PaymentOutcome:
    """Result of an authorization attempt."""

    success: bool
    transaction_id: str | None = None
    message: str = ""


class PaymentGateway(ABC):
    @abstractmethod
    def authorize(self, amount: Decimal) -> PaymentOutcome:
        """Authorize a charge of ``amount``."""
        ...


class SimulatedGateway(PaymentGateway):
    """Succeeds with a fixed probability after an artificial delay."""

    def __init__(
        self,
        prefix: str,
        success_rate: float,
        delay_seconds: float,
        decline_message: str = "Payment failed. Please try again.",
        rng: random.Random | None = None,
        sleep=time.sleep,
    ):
        self.prefix = prefix
        self.success_rate = success_rate
        self.delay_seconds = delay_seconds
        self.decline_message = decline_message
        self.rng = rng or random.Random()
        self.sleep = sleep

    def authorize(self, amount: Decimal) -> PaymentOutcome:
        delay = self.delay_seconds * PAYMENT_DELAY_SCALE
        if delay > 0:
            self.sleep(delay)

        if self.rng.random() >= self.success_rate:
            return PaymentOutcome(success=False, message=self.decline_message)

        transaction_id = f"{self.prefix}{int(time.time() * 1000)}{self.rng.randrange(1000)}"
        return PaymentOutcome(success=True, transaction_id=transaction_id, message="Payment successful")


def default_gateways() -> Dict[str, PaymentGateway]:
    return {
        "bkash": SimulatedGateway(prefix="BKS", success_rate=0.9, delay_seconds=2.0),
        "card": SimulatedGateway(
            prefix="CARD",
            success_rate=0.85,
            delay_seconds=3.0,
            decline_message="Card payment declined. Please check your card details.",
        ),
    }

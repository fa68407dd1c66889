from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, Numeric

from dhakacart.data.database import Base


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)  # bkash, card, cash_on_delivery
    transaction_id = Column(String(64), nullable=True, unique=True)
    status = Column(String(20), nullable=False)  # pending, completed, refunded
    card_last4 = Column(String(4), nullable=True)

    refund_reason = Column(Text, nullable=True)
    refund_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=True)

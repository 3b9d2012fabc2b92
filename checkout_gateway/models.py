from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, Numeric, String

from checkout_gateway.database import Base


class PaymentIntentRow(Base):
    __tablename__ = "payment_intents"

    seq = Column(Integer, primary_key=True, autoincrement=True)   # insertion order
    id = Column(String, unique=True, index=True, nullable=False)  # processor intent id
    order_id = Column(String, index=True)                         # not unique across retries
    client_secret = Column(String)
    amount = Column(Numeric(18, 4))
    currency = Column(String)
    status = Column(String)
    customer = Column(JSON)
    plan_metadata = Column(JSON)
    redirect_url = Column(String)
    created_at = Column(DateTime(timezone=True))
    simulated = Column(Boolean, default=False)


class PaymentRow(Base):
    __tablename__ = "payments"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String, unique=True, index=True, nullable=False)
    payment_intent_id = Column(String, index=True)
    status = Column(String)                                       # succeeded | failed
    amount = Column(Numeric(18, 4))
    currency = Column(String)
    card_last4 = Column(String(4))
    customer_email = Column(String)
    created_at = Column(DateTime(timezone=True))
    simulated = Column(Boolean, default=False)
    source = Column(String)

"""Storage for created intents and completed payments.

The gateway only talks to the :class:`Ledger` interface. ``InMemoryLedger``
lives as long as the process; ``SqlLedger`` keeps records in a database.
Neither enforces one payment per intent.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Optional

from checkout_gateway.database import Base, make_engine, make_session_factory
from checkout_gateway.models import PaymentIntentRow, PaymentRow
from checkout_gateway.schemas import Customer, Payment, PaymentIntent


class Ledger(ABC):

    @abstractmethod
    def put_intent(self, intent: PaymentIntent) -> PaymentIntent: ...

    @abstractmethod
    def get_intent(self, intent_id: str) -> Optional[PaymentIntent]: ...

    @abstractmethod
    def get_intent_by_order_id(self, order_id: str) -> Optional[PaymentIntent]: ...

    @abstractmethod
    def update_intent_status(self, intent_id: str, status: str) -> Optional[PaymentIntent]: ...

    @abstractmethod
    def list_intents(self) -> List[PaymentIntent]: ...

    @abstractmethod
    def put_payment(self, payment: Payment) -> Payment: ...

    @abstractmethod
    def get_payment(self, payment_id: str) -> Optional[Payment]: ...

    @abstractmethod
    def list_payments(self) -> List[Payment]: ...

    def get_payment_by_order_id(self, order_id: str) -> Optional[Payment]:
        """First payment whose intent carries ``order_id``."""
        intent_ids = {i.id for i in self.list_intents() if i.order_id == order_id}
        for payment in self.list_payments():
            if payment.payment_intent_id in intent_ids:
                return payment
        return None


class InMemoryLedger(Ledger):

    def __init__(self):
        self._intents: Dict[str, PaymentIntent] = {}
        self._payments: Dict[str, Payment] = {}

    def put_intent(self, intent):
        self._intents[intent.id] = intent
        return intent

    def get_intent(self, intent_id):
        return self._intents.get(intent_id)

    def get_intent_by_order_id(self, order_id):
        return next((i for i in self._intents.values() if i.order_id == order_id), None)

    def update_intent_status(self, intent_id, status):
        intent = self._intents.get(intent_id)
        if intent is None:
            return None
        updated = intent.model_copy(update={"status": status})
        self._intents[intent_id] = updated
        return updated

    def list_intents(self):
        return list(self._intents.values())

    def put_payment(self, payment):
        self._payments[payment.id] = payment
        return payment

    def get_payment(self, payment_id):
        return self._payments.get(payment_id)

    def list_payments(self):
        return list(self._payments.values())


def _amount_out(value):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def _intent_from_row(row: PaymentIntentRow) -> PaymentIntent:
    return PaymentIntent(
        id=row.id,
        client_secret=row.client_secret,
        amount=_amount_out(row.amount),
        currency=row.currency,
        status=row.status,
        order_id=row.order_id,
        customer=Customer(**(row.customer or {})),
        plan_metadata=row.plan_metadata,
        redirect_url=row.redirect_url,
        created_at=row.created_at,
        simulated=bool(row.simulated),
    )


def _payment_from_row(row: PaymentRow) -> Payment:
    return Payment(
        id=row.id,
        payment_intent_id=row.payment_intent_id,
        status=row.status,
        amount=_amount_out(row.amount),
        currency=row.currency,
        card_last4=row.card_last4,
        customer_email=row.customer_email,
        created_at=row.created_at,
        simulated=bool(row.simulated),
        source=row.source,
    )


class SqlLedger(Ledger):
    """Ledger backed by SQLAlchemy; tables are created on construction."""

    def __init__(self, database_url: str = None, session_factory=None):
        if session_factory is None:
            engine = make_engine(database_url)
            Base.metadata.create_all(bind=engine)
            session_factory = make_session_factory(engine)
        self.SessionLocal = session_factory

    def put_intent(self, intent):
        db = self.SessionLocal()
        try:
            db.add(PaymentIntentRow(
                id=intent.id,
                order_id=intent.order_id,
                client_secret=intent.client_secret,
                amount=intent.amount,
                currency=intent.currency,
                status=intent.status,
                customer=intent.customer.model_dump(),
                plan_metadata=intent.plan_metadata,
                redirect_url=intent.redirect_url,
                created_at=intent.created_at,
                simulated=intent.simulated,
            ))
            db.commit()
        finally:
            db.close()
        return intent

    def get_intent(self, intent_id):
        db = self.SessionLocal()
        try:
            row = db.query(PaymentIntentRow).filter_by(id=intent_id).first()
            return _intent_from_row(row) if row else None
        finally:
            db.close()

    def get_intent_by_order_id(self, order_id):
        db = self.SessionLocal()
        try:
            row = (
                db.query(PaymentIntentRow)
                .filter_by(order_id=order_id)
                .order_by(PaymentIntentRow.seq)
                .first()
            )
            return _intent_from_row(row) if row else None
        finally:
            db.close()

    def update_intent_status(self, intent_id, status):
        db = self.SessionLocal()
        try:
            row = db.query(PaymentIntentRow).filter_by(id=intent_id).first()
            if row is None:
                return None
            row.status = status
            db.commit()
            db.refresh(row)
            return _intent_from_row(row)
        finally:
            db.close()

    def list_intents(self):
        db = self.SessionLocal()
        try:
            rows = db.query(PaymentIntentRow).order_by(PaymentIntentRow.seq).all()
            return [_intent_from_row(r) for r in rows]
        finally:
            db.close()

    def put_payment(self, payment):
        db = self.SessionLocal()
        try:
            db.add(PaymentRow(
                id=payment.id,
                payment_intent_id=payment.payment_intent_id,
                status=payment.status,
                amount=payment.amount,
                currency=payment.currency,
                card_last4=payment.card_last4,
                customer_email=payment.customer_email,
                created_at=payment.created_at,
                simulated=payment.simulated,
                source=payment.source,
            ))
            db.commit()
        finally:
            db.close()
        return payment

    def get_payment(self, payment_id):
        db = self.SessionLocal()
        try:
            row = db.query(PaymentRow).filter_by(id=payment_id).first()
            return _payment_from_row(row) if row else None
        finally:
            db.close()

    def get_payment_by_order_id(self, order_id):
        db = self.SessionLocal()
        try:
            row = (
                db.query(PaymentRow)
                .join(PaymentIntentRow, PaymentIntentRow.id == PaymentRow.payment_intent_id)
                .filter(PaymentIntentRow.order_id == order_id)
                .order_by(PaymentRow.seq)
                .first()
            )
            return _payment_from_row(row) if row else None
        finally:
            db.close()

    def list_payments(self):
        db = self.SessionLocal()
        try:
            rows = db.query(PaymentRow).order_by(PaymentRow.seq).all()
            return [_payment_from_row(r) for r in rows]
        finally:
            db.close()

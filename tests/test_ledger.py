import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from checkout_gateway.database import Base
from checkout_gateway.ledger import InMemoryLedger, SqlLedger
from checkout_gateway.models import PaymentRow
from checkout_gateway.schemas import Customer, Payment, PaymentIntent

SQLALCHEMY_DATABASE_URL = "sqlite:///./test_ledger.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={
                       "check_same_thread": False})
TestingSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def sql_ledger():
    Base.metadata.create_all(bind=engine)
    yield SqlLedger(session_factory=TestingSessionLocal)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def ledger(request):
    if request.param == "memory":
        return InMemoryLedger()
    return request.getfixturevalue("sql_ledger")


def make_intent(intent_id, order_id=None, amount=100):
    return PaymentIntent(
        id=intent_id,
        client_secret=f"{intent_id}_secret",
        amount=amount,
        currency="USD",
        status="requires_payment_method",
        order_id=order_id,
        customer=Customer(email="a@b.com", first_name="A"),
        plan_metadata={"plan": "basic", "vin": None, "order_id": order_id},
    )


def make_payment(payment_id, intent_id):
    return Payment(id=payment_id, payment_intent_id=intent_id, status="succeeded",
                   amount=100, currency="USD", card_last4="4242")


def test_intent_round_trip(ledger):
    ledger.put_intent(make_intent("int_1", "ORDER-1", amount=49.99))

    intent = ledger.get_intent("int_1")

    assert intent.amount == 49.99
    assert intent.customer.first_name == "A"
    assert intent.plan_metadata["plan"] == "basic"
    assert ledger.get_intent("int_missing") is None


def test_order_lookup_returns_first_match(ledger):
    ledger.put_intent(make_intent("int_1", "ORDER-1"))
    ledger.put_intent(make_intent("int_2", "ORDER-1"))

    assert ledger.get_intent_by_order_id("ORDER-1").id == "int_1"
    assert ledger.get_intent_by_order_id("ORDER-X") is None


def test_status_update_only_touches_status(ledger):
    ledger.put_intent(make_intent("int_1", "ORDER-1"))

    updated = ledger.update_intent_status("int_1", "succeeded")

    assert updated.status == "succeeded"
    assert ledger.get_intent("int_1").status == "succeeded"
    assert ledger.get_intent("int_1").amount == 100
    assert ledger.update_intent_status("int_missing", "succeeded") is None


def test_payments_by_id_and_order(ledger):
    ledger.put_intent(make_intent("int_1", "ORDER-1"))
    ledger.put_intent(make_intent("int_2", "ORDER-2"))
    ledger.put_payment(make_payment("pay_1", "int_1"))
    ledger.put_payment(make_payment("pay_2", "int_2"))

    assert ledger.get_payment("pay_2").payment_intent_id == "int_2"
    assert ledger.get_payment_by_order_id("ORDER-1").id == "pay_1"
    assert ledger.get_payment_by_order_id("ORDER-3") is None
    assert [p.id for p in ledger.list_payments()] == ["pay_1", "pay_2"]
    assert [i.id for i in ledger.list_intents()] == ["int_1", "int_2"]


def test_sql_ledger_persists_rows(sql_ledger):
    sql_ledger.put_payment(make_payment("pay_1", "int_1"))

    db = TestingSessionLocal()
    row = db.query(PaymentRow).filter_by(id="pay_1").first()
    assert row.card_last4 == "4242"
    db.close()

    reopened = SqlLedger(session_factory=TestingSessionLocal)
    assert reopened.get_payment("pay_1").amount == 100

from datetime import date

import pytest

from checkout_gateway.cards import is_expired, validate_card
from checkout_gateway.errors import CardExpired, InvalidCardNumber, InvalidCVV, ValidationError
from checkout_gateway.schemas import BillingIn, CardIn

MARCH_2025 = date(2025, 3, 15)


def make_card(**overrides):
    fields = {"number": "4242424242424242", "exp_month": 12, "exp_year": 2030, "cvc": "123"}
    fields.update(overrides)
    return CardIn(**fields)


@pytest.mark.parametrize("number", ["4" * 15, "4" * 19, "4242 4242 4242 4242", "4242-4242-4242-4242"])
def test_card_number_lengths_accepted(number):
    card = validate_card(make_card(number=number), today=MARCH_2025)
    assert card.number.isdigit()


@pytest.mark.parametrize("number", ["4" * 14, "4" * 20, "", "4242abcd42424242"])
def test_card_number_rejected(number):
    with pytest.raises(InvalidCardNumber):
        validate_card(make_card(number=number), today=MARCH_2025)


@pytest.mark.parametrize("cvc", ["12", "12345", "", "12a"])
def test_cvv_rejected(cvc):
    with pytest.raises(InvalidCVV):
        validate_card(make_card(cvc=cvc), today=MARCH_2025)


@pytest.mark.parametrize("cvc", ["123", "1234"])
def test_cvv_accepted(cvc):
    assert validate_card(make_card(cvc=cvc), today=MARCH_2025).cvc == cvc


def test_previous_month_is_expired():
    with pytest.raises(CardExpired):
        validate_card(make_card(exp_year=2025, exp_month=2), today=MARCH_2025)


@pytest.mark.parametrize("month", [3, 4])
def test_current_and_next_month_are_valid(month):
    card = validate_card(make_card(exp_year=2025, exp_month=month), today=MARCH_2025)
    assert (card.exp_year, card.exp_month) == (2025, month)


@pytest.mark.parametrize("month", [0, 13])
def test_month_out_of_range(month):
    with pytest.raises(CardExpired):
        validate_card(make_card(exp_month=month), today=MARCH_2025)


def test_two_digit_year_is_read_as_2000s():
    assert validate_card(make_card(exp_year=30), today=MARCH_2025).exp_year == 2030


def test_is_expired_boundaries():
    assert is_expired(2025, 2, MARCH_2025)
    assert not is_expired(2025, 3, MARCH_2025)
    assert not is_expired(2026, 1, MARCH_2025)


def test_missing_card():
    with pytest.raises(ValidationError):
        validate_card(None)


def test_card_errors_are_client_errors():
    for exc in (InvalidCardNumber, CardExpired, InvalidCVV):
        assert exc().status_code == 400


def test_holder_name_and_repr_hide_number():
    card = validate_card(
        make_card(),
        BillingIn(first_name="Ada", last_name="Lovelace"),
        today=MARCH_2025,
    )
    assert card.holder_name == "Ada Lovelace"
    assert card.last4 == "4242"
    assert "4242424242424242" not in repr(card)

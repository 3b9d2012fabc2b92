"""Local card checks run before anything is sent to the processor."""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from checkout_gateway.errors import CardExpired, InvalidCardNumber, InvalidCVV, ValidationError
from checkout_gateway.schemas import BillingIn, CardIn

_SEPARATORS = re.compile(r"[\s-]+")


@dataclass(frozen=True)
class ValidatedCard:
    number: str
    exp_month: int
    exp_year: int
    cvc: str
    holder_name: str = ""

    @property
    def last4(self) -> str:
        return self.number[-4:]

    def __repr__(self) -> str:
        return (
            f"ValidatedCard(last4={self.last4!r}, exp_month={self.exp_month}, "
            f"exp_year={self.exp_year})"
        )


def normalize_number(number: str) -> str:
    return _SEPARATORS.sub("", number or "")


def is_expired(exp_year: int, exp_month: int, today: Optional[date] = None) -> bool:
    """A card is valid through the last day of its expiry month."""
    today = today or date.today()
    return (exp_year, exp_month) < (today.year, today.month)


def validate_card(card: Optional[CardIn], billing: Optional[BillingIn] = None,
                  today: Optional[date] = None) -> ValidatedCard:
    if card is None:
        raise ValidationError("Missing card details")

    number = normalize_number(card.number)
    if not number.isdigit() or not 15 <= len(number) <= 19:
        raise InvalidCardNumber("Card number must be 15 to 19 digits")

    if card.exp_month is None or card.exp_year is None:
        raise CardExpired("Missing card expiry date")
    if not 1 <= card.exp_month <= 12:
        raise CardExpired("Expiry month must be between 1 and 12")
    exp_year = card.exp_year + 2000 if card.exp_year < 100 else card.exp_year
    if is_expired(exp_year, card.exp_month, today):
        raise CardExpired("Card has expired")

    cvc = (card.cvc or "").strip()
    if not cvc.isdigit() or not 3 <= len(cvc) <= 4:
        raise InvalidCVV("CVV must be 3 or 4 digits")

    holder = ""
    if billing is not None:
        holder = " ".join(p for p in (billing.first_name, billing.last_name) if p).strip()

    return ValidatedCard(
        number=number,
        exp_month=card.exp_month,
        exp_year=exp_year,
        cvc=cvc,
        holder_name=holder,
    )

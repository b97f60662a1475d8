from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from app.payouts.base import BeneficiaryDirectory
from app.payouts.errors import UnresolvedPaymentMethod
from app.payouts.model import PayoutRequest

METHOD_BANK = "bank"
METHOD_PAYPAL = "paypal"
METHOD_MOBILE_MONEY = "mobile_money"
METHOD_UNRESOLVED = "unresolved"

METHODS = [METHOD_BANK, METHOD_PAYPAL, METHOD_MOBILE_MONEY, METHOD_UNRESOLVED]

SOURCE_PAYOUT_DETAILS = "payout_details"
SOURCE_DEFAULT = "beneficiary_default"

_BANK_TYPES = {"bank", "bank_account", "paystack"}
_MOBILE_MONEY_TYPES = {"mobile_money", "pawapay", "momo"}


@dataclass(frozen=True)
class BankDestination:
    method: ClassVar[str] = METHOD_BANK
    COLUMNS: ClassVar[tuple[str, ...]] = (
        "bank_holder_name",
        "bank_name",
        "account_number_last4",
        "iban",
        "recipient_code",
        "bank_country",
    )

    holder_name: Optional[str] = None
    bank_name: Optional[str] = None
    account_last4: Optional[str] = None
    iban: Optional[str] = None
    recipient_code: Optional[str] = None
    country: Optional[str] = None

    def export_fields(self) -> dict[str, str]:
        return {
            "bank_holder_name": self.holder_name or "",
            "bank_name": self.bank_name or "",
            "account_number_last4": self.account_last4 or "",
            "iban": self.iban or "",
            "recipient_code": self.recipient_code or "",
            "bank_country": self.country or "",
        }

    def label(self) -> str:
        holder = self.holder_name or "No name"
        bank = self.bank_name or "Unknown bank"
        last4 = self.account_last4 or "XXXX"
        recipient = f" (Recipient: {self.recipient_code})" if self.recipient_code else ""
        iban = f" - IBAN: {self.iban}" if self.iban else ""
        return f"{holder} ({bank}) ****{last4}{recipient}{iban}"


@dataclass(frozen=True)
class PayPalDestination:
    method: ClassVar[str] = METHOD_PAYPAL
    COLUMNS: ClassVar[tuple[str, ...]] = ("paypal_email",)

    email: str

    def export_fields(self) -> dict[str, str]:
        return {"paypal_email": self.email}

    def label(self) -> str:
        return f"PayPal - {self.email}"


@dataclass(frozen=True)
class MobileMoneyDestination:
    method: ClassVar[str] = METHOD_MOBILE_MONEY
    COLUMNS: ClassVar[tuple[str, ...]] = ("phone", "mobile_provider", "mobile_country")

    phone: str
    provider: Optional[str] = None
    country: Optional[str] = None

    def export_fields(self) -> dict[str, str]:
        return {
            "phone": self.phone,
            "mobile_provider": self.provider or "",
            "mobile_country": self.country or "",
        }

    def label(self) -> str:
        return f"Mobile Money - {self.country or 'Unknown'} ****{self.phone[-4:]}"


Destination = Union[BankDestination, PayPalDestination, MobileMoneyDestination]

DESTINATION_TYPES: dict[str, type] = {
    METHOD_BANK: BankDestination,
    METHOD_PAYPAL: PayPalDestination,
    METHOD_MOBILE_MONEY: MobileMoneyDestination,
}


@dataclass(frozen=True)
class ResolvedPaymentMethod:
    destination: Optional[Destination]
    source: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.destination is not None

    @property
    def method(self) -> str:
        return self.destination.method if self.destination is not None else METHOD_UNRESOLVED

    def label(self) -> str:
        return self.destination.label() if self.destination is not None else "N/A"

    def as_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "source": self.source,
            "label": self.label(),
            "fields": self.destination.export_fields() if self.destination is not None else {},
        }


UNRESOLVED = ResolvedPaymentMethod(destination=None)


def _pick(raw: dict[str, Any], *keys: str) -> Optional[str]:
    # Snapshots arrive both snake_case (our tables) and camelCase (upstream JSON).
    for k in keys:
        v = raw.get(k)
        if v is None:
            continue
        s = str(v).strip()
        if s:
            return s
    return None


def _bank(raw: dict[str, Any]) -> Optional[BankDestination]:
    dest = BankDestination(
        holder_name=_pick(raw, "bank_holder_name", "bankHolderName", "holder_name"),
        bank_name=_pick(raw, "bank_name", "bankName"),
        account_last4=_pick(raw, "account_number_last4", "accountNumberLast4", "last4"),
        iban=_pick(raw, "iban"),
        recipient_code=_pick(raw, "recipient_code", "paystackRecipientCode", "paystack_recipient_code"),
        country=_pick(raw, "country"),
    )
    if not (dest.account_last4 or dest.iban or dest.recipient_code):
        return None
    return dest


def _paypal(raw: dict[str, Any]) -> Optional[PayPalDestination]:
    email = _pick(raw, "email", "paypal_email")
    return PayPalDestination(email=email) if email else None


def _mobile_money(raw: dict[str, Any]) -> Optional[MobileMoneyDestination]:
    phone = _pick(raw, "phone", "phone_e164")
    if not phone:
        return None
    return MobileMoneyDestination(
        phone=phone,
        provider=_pick(raw, "provider"),
        country=_pick(raw, "country_name", "countryName", "country"),
    )


def parse_snapshot(raw: Optional[dict[str, Any]]) -> Optional[Destination]:
    """Turn a stored snapshot into a destination, or None when nothing usable is in it."""
    if not raw:
        return None

    kind = (_pick(raw, "type", "method") or "").lower()
    if kind == METHOD_PAYPAL:
        return _paypal(raw)
    if kind in _BANK_TYPES:
        return _bank(raw)
    if kind in _MOBILE_MONEY_TYPES:
        return _mobile_money(raw)
    if kind:
        return None

    # Untyped payout_details captured at request creation.
    return _mobile_money(raw) or _paypal(raw) or _bank(raw)


def resolve(request: PayoutRequest, directory: Optional[BeneficiaryDirectory]) -> ResolvedPaymentMethod:
    dest = parse_snapshot(request.payout_details)
    if dest is not None:
        return ResolvedPaymentMethod(destination=dest, source=SOURCE_PAYOUT_DETAILS)

    if directory is not None and request.beneficiary_id is not None:
        dest = parse_snapshot(directory.get_default_payment_method(request.beneficiary_id))
        if dest is not None:
            return ResolvedPaymentMethod(destination=dest, source=SOURCE_DEFAULT)

    return UNRESOLVED


def require_destination(request: PayoutRequest, directory: Optional[BeneficiaryDirectory]) -> Destination:
    resolved = resolve(request, directory)
    if resolved.destination is None:
        raise UnresolvedPaymentMethod(f"No payment method on file for payout {request.id}")
    return resolved.destination

# backoffice/utils/normalize.py
from enum import Enum
from typing import Optional, Type, TypeVar, Union

from backoffice.constants import (
    NORMALIZE_AMORTIZATION_METHOD, NORMALIZE_EARLY_PREFERENCE, NORMALIZE_FINANCING_STATUS,
    NORMALIZE_PAYMENT_METHOD, NORMALIZE_PAYMENT_TYPE,
    AmortizationMethod, EarlyPaymentPreference, FinancingStatus, PaymentMethod, PaymentType,
)
from backoffice.utils.errors import ValidationError

E = TypeVar("E", bound=Enum)


def _lookup(raw: Union[str, Enum, None], table: dict, enum_cls: Type[E]) -> Optional[E]:
    if raw is None:
        return None
    if isinstance(raw, enum_cls):
        return raw
    key = str(raw.value if isinstance(raw, Enum) else raw).strip().lower()
    return table.get(key)


def norm_financing_status(raw: Optional[str]) -> FinancingStatus:
    if not raw:
        return FinancingStatus.ACTIVE
    return _lookup(raw, NORMALIZE_FINANCING_STATUS, FinancingStatus) or FinancingStatus.ACTIVE


def norm_payment_type(raw: Optional[str]) -> PaymentType:
    if not raw:
        return PaymentType.SCHEDULED
    return _lookup(raw, NORMALIZE_PAYMENT_TYPE, PaymentType) or PaymentType.SCHEDULED


# Los siguientes no tienen default razonable: valor desconocido → error de validación

def parse_amortization_method(raw) -> AmortizationMethod:
    method = _lookup(raw, NORMALIZE_AMORTIZATION_METHOD, AmortizationMethod)
    if method is None:
        raise ValidationError(f"Método de amortización inválido: {raw}")
    return method


def parse_payment_method(raw) -> PaymentMethod:
    method = _lookup(raw, NORMALIZE_PAYMENT_METHOD, PaymentMethod)
    if method is None:
        raise ValidationError(f"Método de pago inválido: {raw}")
    return method


def parse_early_preference(raw) -> EarlyPaymentPreference:
    pref = _lookup(raw, NORMALIZE_EARLY_PREFERENCE, EarlyPaymentPreference)
    if pref is None:
        raise ValidationError(f"Preferencia inválida: {raw}")
    return pref

# backoffice/constants.py
from decimal import Decimal
from enum import Enum

# ==============================
# Financings (financiamientos)
# ==============================
class FinancingStatus(str, Enum):
    ACTIVE  = "active"       # Vigente
    SETTLED = "settled"      # Cancelado totalmente (terminal)


class AmortizationMethod(str, Enum):
    SAC   = "SAC"            # Amortización constante
    PRICE = "PRICE"          # Cuota constante (sistema francés)


class FinancingType(str, Enum):
    MORTGAGE      = "mortgage"
    PERSONAL_LOAN = "personal_loan"
    VEHICLE       = "vehicle"
    OTHER         = "other"


# ==============================
# Financing payments (ledger)
# ==============================
class PaymentType(str, Enum):
    SCHEDULED = "scheduled"  # Cuota del cronograma
    PARTIAL   = "partial"    # Cuota pagada con excedente
    EARLY     = "early"      # Adelanto a capital, sin número de cuota


class PaymentMethod(str, Enum):
    BOLETO       = "boleto"
    DIRECT_DEBIT = "direct_debit"
    CARD         = "card"
    PIX          = "pix"
    TRANSFER     = "transfer"


class EarlyPaymentPreference(str, Enum):
    REDUCE_TERM        = "reduce_term"         # misma cuota, menos plazo
    REDUCE_INSTALLMENT = "reduce_installment"  # mismo plazo, cuota menor


# ==============================
# Colaboradores externos
# ==============================
class TransactionType(str, Enum):
    INCOME  = "income"
    EXPENSE = "expense"


# Redondeo a centavos
CENT = Decimal("0.01")

# ==============================
# Normalización de entradas "legacy"
# (PT y variantes → EN canónico)
# ==============================
NORMALIZE_FINANCING_STATUS = {
    "active":    FinancingStatus.ACTIVE,
    "ativo":     FinancingStatus.ACTIVE,
    "settled":   FinancingStatus.SETTLED,
    "quitado":   FinancingStatus.SETTLED,
    "paid":      FinancingStatus.SETTLED,
}

NORMALIZE_AMORTIZATION_METHOD = {
    "sac":    AmortizationMethod.SAC,
    "price":  AmortizationMethod.PRICE,
    "french": AmortizationMethod.PRICE,
    "frances": AmortizationMethod.PRICE,
}

NORMALIZE_PAYMENT_TYPE = {
    "scheduled":  PaymentType.SCHEDULED,
    "regular":    PaymentType.SCHEDULED,   # valor usado por versiones viejas
    "parcela":    PaymentType.SCHEDULED,
    "partial":    PaymentType.PARTIAL,
    "parcial":    PaymentType.PARTIAL,
    "early":      PaymentType.EARLY,
    "antecipado": PaymentType.EARLY,
}

NORMALIZE_PAYMENT_METHOD = {
    "boleto":            PaymentMethod.BOLETO,
    "direct_debit":      PaymentMethod.DIRECT_DEBIT,
    "debito_automatico": PaymentMethod.DIRECT_DEBIT,
    "card":              PaymentMethod.CARD,
    "cartao":            PaymentMethod.CARD,
    "pix":               PaymentMethod.PIX,
    "transfer":          PaymentMethod.TRANSFER,
    "transferencia":     PaymentMethod.TRANSFER,
}

NORMALIZE_EARLY_PREFERENCE = {
    "reduce_term":        EarlyPaymentPreference.REDUCE_TERM,
    "reducao_prazo":      EarlyPaymentPreference.REDUCE_TERM,
    "reduce_installment": EarlyPaymentPreference.REDUCE_INSTALLMENT,
    "reducao_parcela":    EarlyPaymentPreference.REDUCE_INSTALLMENT,
}

"""String constants stored in the status/type columns."""


class Role:
    INVESTOR = "INVESTOR"
    ADMIN = "ADMIN"


class TokenType:
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    LOGIN_OTP = "LOGIN_OTP"
    PASSWORD_RESET = "PASSWORD_RESET"


class Category:
    PROPERTY = "PROPERTY"
    FUND = "FUND"

    ALL = (PROPERTY, FUND)


class PaymentProviderName:
    PLAID = "PLAID"
    PAYPAL = "PAYPAL"

    ALL = (PLAID, PAYPAL)


class PaymentStatus:
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"
    CANCELED = "CANCELED"

    ALL = (PENDING, PROCESSING, COMPLETED, FAILED, REFUNDED, CANCELED)


class CheckoutState:
    INTENT_CREATED = "INTENT_CREATED"
    AWAITING_CONFIRMATION = "AWAITING_CONFIRMATION"
    SETTLED = "SETTLED"
    FAILED = "FAILED"


class BalanceType:
    CREDIT = "CREDIT"
    DEBIT = "DEBIT"

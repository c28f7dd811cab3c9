from .user import User
from .verification_token import VerificationToken
from .media import Media
from .portfolio import Portfolio, PortfolioGalleryImage, Investment
from .bank_account import BankAccount
from .payment import Payment
from .order import Cart, CheckoutIntent, Checkout
from .dividend import PortfolioDividend, UserDividend
from .wallet import WalletEntry, WalletAccount

import unittest
from datetime import date, timedelta
from unittest.mock import patch

from tests.factories import PASSWORD, make_user, reset_db

from models.enums import TokenType
from models.user import User
from models.verification_token import VerificationToken
from models.wallet import WalletAccount
from services import otp_service, user_service
from services.auth import create_access_token, decode_access_token, token_for_user
from services.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from utils.common_helpers import utcnow


class OtpTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.user = make_user(self.db)

    def tearDown(self):
        self.db.close()

    def test_generate_is_six_digits(self):
        for _ in range(20):
            otp = otp_service.generate_otp()
            self.assertEqual(len(otp), 6)
            self.assertTrue(otp.isdigit())

    def test_otp_is_stored_hashed_and_single_use(self):
        otp = otp_service.issue_otp(self.db, self.user.id, TokenType.LOGIN_OTP)
        self.db.commit()
        row = self.db.query(VerificationToken).one()
        self.assertNotEqual(row.token_hash, otp)

        otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, otp)
        self.db.commit()
        with self.assertRaises(ValidationError):
            otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, otp)

    def test_reissue_replaces_previous_code(self):
        first = otp_service.issue_otp(self.db, self.user.id, TokenType.LOGIN_OTP)
        second = otp_service.issue_otp(self.db, self.user.id, TokenType.LOGIN_OTP)
        self.db.commit()
        self.assertEqual(self.db.query(VerificationToken).count(), 1)
        if first != second:
            with self.assertRaises(ValidationError):
                otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, first)
        otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, second)

    def test_expired_code(self):
        otp = otp_service.issue_otp(self.db, self.user.id, TokenType.LOGIN_OTP)
        row = self.db.query(VerificationToken).one()
        row.expires_at = utcnow() - timedelta(seconds=1)
        self.db.commit()

        with self.assertRaises(ValidationError) as ctx:
            otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, otp)
        self.assertEqual(ctx.exception.message, "OTP has expired")

    def test_purposes_are_separate(self):
        otp = otp_service.issue_otp(self.db, self.user.id, TokenType.EMAIL_VERIFICATION)
        self.db.commit()
        with self.assertRaises(ValidationError):
            otp_service.consume_otp(self.db, self.user.id, TokenType.LOGIN_OTP, otp)


class UserServiceTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()

    def tearDown(self):
        self.db.close()

    def _register(self, username="ada", email="Ada@Example.com"):
        return user_service.register_user(
            self.db, name="Ada", username=username, email=email, password=PASSWORD
        )

    def test_register_opens_wallet_and_issues_code(self):
        user, otp = self._register()
        self.assertEqual(user.email, "ada@example.com")
        self.assertFalse(user.is_verified)
        self.assertIsNotNone(self.db.get(WalletAccount, user.id))
        self.assertEqual(len(otp), 6)

    def test_duplicate_username_or_email(self):
        self._register()
        with self.assertRaises(ConflictError):
            self._register(email="other@example.com")
        with self.assertRaises(ConflictError):
            self._register(username="other")

    def test_login_requires_verification(self):
        user, otp = self._register()
        with self.assertRaises(UnauthorizedError):
            user_service.authenticate(self.db, "ada", PASSWORD)

        user_service.verify_account(self.db, "ada", otp)
        self.assertEqual(user_service.authenticate(self.db, "ada@example.com", PASSWORD).id, user.id)

    def test_wrong_password(self):
        make_user(self.db)
        with self.assertRaises(UnauthorizedError):
            user_service.authenticate(self.db, "nobody", PASSWORD)

    def test_login_with_otp(self):
        user = make_user(self.db)
        _, otp = user_service.request_login_otp(self.db, user.username, PASSWORD)
        self.assertEqual(user_service.authenticate_with_otp(self.db, user.username, PASSWORD, otp).id, user.id)
        with self.assertRaises(ValidationError):
            user_service.authenticate_with_otp(self.db, user.username, PASSWORD, otp)

    def test_resend_for_verified_account(self):
        user = make_user(self.db)
        with self.assertRaises(ConflictError):
            user_service.resend_verification(self.db, user.username)


class PasswordTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.user = make_user(self.db)

    def tearDown(self):
        self.db.close()

    def test_reset_flow(self):
        _, otp = user_service.request_password_reset(self.db, self.user.email.upper())

        user_service.check_password_reset_otp(self.db, self.user.email, otp)
        user_service.confirm_password_reset(self.db, self.user.email, otp, "brand-new-pass")

        self.assertEqual(user_service.authenticate(self.db, self.user.username, "brand-new-pass").id, self.user.id)
        with self.assertRaises(UnauthorizedError):
            user_service.authenticate(self.db, self.user.username, PASSWORD)

    def test_reset_code_is_spent_on_confirm(self):
        _, otp = user_service.request_password_reset(self.db, self.user.email)
        user_service.confirm_password_reset(self.db, self.user.email, otp, "brand-new-pass")
        with self.assertRaises(ValidationError):
            user_service.confirm_password_reset(self.db, self.user.email, otp, "another-pass")

    def test_reset_rejects_wrong_code_and_other_purposes(self):
        with patch("services.otp_service.generate_otp", side_effect=["111111", "222222"]):
            login_otp = otp_service.issue_otp(self.db, self.user.id, TokenType.LOGIN_OTP)
            self.db.commit()
            user_service.request_password_reset(self.db, self.user.email)
        with self.assertRaises(ValidationError):
            user_service.check_password_reset_otp(self.db, self.user.email, login_otp)

    def test_reset_unknown_email(self):
        with self.assertRaises(NotFoundError):
            user_service.request_password_reset(self.db, "nobody@example.com")

    def test_reset_check_requires_verified_account(self):
        pending = make_user(self.db, verified=False)
        _, otp = user_service.request_password_reset(self.db, pending.email)
        with self.assertRaises(UnauthorizedError):
            user_service.check_password_reset_otp(self.db, pending.email, otp)

    def test_change_password(self):
        user_service.change_password(self.db, self.user, PASSWORD, "brand-new-pass")
        self.assertEqual(user_service.authenticate(self.db, self.user.username, "brand-new-pass").id, self.user.id)

    def test_change_password_checks_current(self):
        with self.assertRaises(ValidationError):
            user_service.change_password(self.db, self.user, "not-my-password", "brand-new-pass")
        with self.assertRaises(ValidationError):
            user_service.change_password(self.db, self.user, PASSWORD, PASSWORD)


class ProfileTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()
        self.user = make_user(self.db)

    def tearDown(self):
        self.db.close()

    def test_update_only_sent_fields(self):
        user_service.update_profile(self.db, self.user, {"city": "Austin", "date_of_birth": date(1990, 5, 1)})
        user_service.update_profile(self.db, self.user, {"country": "US"})

        fresh = self.db.get(User, self.user.id)
        self.assertEqual(fresh.city, "Austin")
        self.assertEqual(fresh.country, "US")
        self.assertEqual(fresh.date_of_birth, date(1990, 5, 1))
        self.assertEqual(fresh.name, "Ada Investor")

    def test_name_cannot_be_cleared(self):
        with self.assertRaises(ValidationError):
            user_service.update_profile(self.db, self.user, {"name": None})


class TokenTests(unittest.TestCase):
    def setUp(self):
        self.db = reset_db()

    def tearDown(self):
        self.db.close()

    def test_round_trip_subject(self):
        user = make_user(self.db)
        payload = decode_access_token(token_for_user(user))
        self.assertEqual(payload["sub"], str(user.id))
        self.assertEqual(payload["role"], user.role)

    def test_expired_token_is_rejected(self):
        token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-5))
        with self.assertRaises(UnauthorizedError):
            decode_access_token(token)


if __name__ == "__main__":
    unittest.main()

"""Auth workflow: registration, email verification, login and password reset.

Every operation returns an AuthOutcome instead of raising, so the HTTP layer can
map failure tags to status codes without knowing the workflow.

Email failures are compensated before the failure is returned: the digest that
was just issued is cleared again so no unusable code is left on the account.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from accounts.codes import digest_code, generate_code
from accounts.email import EmailDeliveryFailed, EmailDispatcher
from accounts.models import User
from accounts.outcomes import AuthErrorCode, AuthFailure, AuthOutcome, AuthSuccess
from accounts.passwords import PasswordHasher
from accounts.repository import DuplicateEmailError, UserRepository
from accounts.tokens import TokenCodec
from config import Settings

logger = logging.getLogger("techwatch.auth")

PASSWORD_RESET_TTL = timedelta(minutes=10)

MSG_VERIFICATION_SENT = "An email with a verification code has been sent to your email"
MSG_RESET_SENT = "You will receive a reset email if user with that email exist"
MSG_EMAIL_EXISTS = "Email already exist, please use another email address"
MSG_INVALID_CREDENTIALS = "Invalid email or password"
MSG_NOT_VERIFIED = "You are not verified, please verify your email to login"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Composes the credential store, token codec, one-time codes and email."""

    def __init__(
        self,
        settings: Settings,
        users: UserRepository,
        tokens: TokenCodec,
        passwords: PasswordHasher,
        mailer: EmailDispatcher,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.settings = settings
        self.users = users
        self.tokens = tokens
        self.passwords = passwords
        self.mailer = mailer
        self.clock = clock

    def verification_url(self, raw_code: str) -> str:
        return f"{self.settings.client_url}/verification-email/{raw_code}"

    def password_reset_url(self, raw_token: str) -> str:
        return f"{self.settings.client_url}/password/reset/{raw_token}"

    async def register(self, pseudo: str, email: str, password: str) -> AuthOutcome:
        email = normalize_email(email)
        if await self.users.get_by_email(email) is not None:
            return AuthFailure(AuthErrorCode.CONFLICT, MSG_EMAIL_EXISTS)

        password_hash = await self.passwords.hash(password)
        code = generate_code()
        try:
            user = await self.users.create(
                pseudo=pseudo,
                email=email,
                password_hash=password_hash,
                verification_code_digest=code.digest,
            )
        except DuplicateEmailError:
            # Lost a race with a concurrent registration; the store is authoritative
            return AuthFailure(AuthErrorCode.CONFLICT, MSG_EMAIL_EXISTS)
        logger.info("Registered user %s", user.id)

        try:
            await self.mailer.send_verification(user, self.verification_url(code.raw))
        except EmailDeliveryFailed:
            logger.warning("Verification email failed for user %s; clearing code", user.id)
            await self.users.set_verification_digest(user.id, None)
            return AuthFailure(
                AuthErrorCode.EMAIL_DELIVERY, "There was an error sending email, please try again"
            )
        return AuthSuccess(message=MSG_VERIFICATION_SENT)

    async def resend_verification(self, email: str) -> AuthOutcome:
        """Issue a fresh verification code, replacing any outstanding one."""
        user = await self.users.get_by_email(normalize_email(email))
        if not user or user.verified:
            return AuthSuccess(message=MSG_VERIFICATION_SENT)

        code = generate_code()
        await self.users.set_verification_digest(user.id, code.digest)
        try:
            await self.mailer.send_verification(user, self.verification_url(code.raw))
        except EmailDeliveryFailed:
            logger.warning("Verification email failed for user %s; clearing code", user.id)
            await self.users.set_verification_digest(user.id, None)
            return AuthFailure(
                AuthErrorCode.EMAIL_DELIVERY, "There was an error sending email, please try again"
            )
        return AuthSuccess(message=MSG_VERIFICATION_SENT)

    async def verify_email(self, raw_code: str) -> AuthOutcome:
        user = await self.users.consume_verification_digest(digest_code(raw_code))
        if not user:
            return AuthFailure(AuthErrorCode.INVALID_TOKEN, "Could not verify email")
        logger.info("Verified email for user %s", user.id)
        return AuthSuccess(message="Email verified successfully")

    async def login(self, email: str, password: str) -> AuthOutcome:
        return await self._login(email, password, admin_only=False)

    async def admin_login(self, email: str, password: str) -> AuthOutcome:
        return await self._login(email, password, admin_only=True)

    async def _login(self, email: str, password: str, *, admin_only: bool) -> AuthOutcome:
        user = await self.users.get_by_email(normalize_email(email))
        if not user:
            return AuthFailure(AuthErrorCode.INVALID_CREDENTIALS, MSG_INVALID_CREDENTIALS)
        # Role is checked before the password is ever looked at
        if admin_only and not user.is_admin:
            logger.warning("Admin login refused for non-admin user %s", user.id)
            return AuthFailure(AuthErrorCode.FORBIDDEN, "You are not authorized to access")
        if not user.verified:
            return AuthFailure(AuthErrorCode.NOT_VERIFIED, MSG_NOT_VERIFIED)
        if not await self.passwords.verify(password, user.password_hash):
            return AuthFailure(AuthErrorCode.INVALID_CREDENTIALS, MSG_INVALID_CREDENTIALS)

        logger.info("User %s logged in%s", user.id, " (admin)" if admin_only else "")
        return AuthSuccess(access_token=self.tokens.sign(user.id))

    def logout(self) -> AuthOutcome:
        """No server-side state: tokens stay valid until they expire."""
        return AuthSuccess(clear_session=True)

    async def forgot_password(self, email: str) -> AuthOutcome:
        user = await self.users.get_by_email(normalize_email(email))
        if not user:
            return AuthSuccess(message=MSG_RESET_SENT)
        # Unverified accounts are reported as such, unlike unknown addresses
        if not user.verified:
            return AuthFailure(AuthErrorCode.FORBIDDEN, "Account not verified")

        token = generate_code()
        await self.users.set_password_reset(user.id, token.digest, self.clock() + PASSWORD_RESET_TTL)
        try:
            await self.mailer.send_password_reset(user, self.password_reset_url(token.raw))
        except EmailDeliveryFailed:
            logger.warning("Password reset email failed for user %s; clearing token", user.id)
            await self.users.set_password_reset(user.id, None, None)
            return AuthFailure(AuthErrorCode.EMAIL_DELIVERY, "There was an error sending email")
        logger.info("Password reset issued for user %s", user.id)
        return AuthSuccess(message=MSG_RESET_SENT)

    async def reset_password(self, raw_token: str, password: str, password_confirm: str) -> AuthOutcome:
        if password != password_confirm:
            return AuthFailure(AuthErrorCode.VALIDATION, "Password and confirm password does not match")

        user = await self.users.get_by_password_reset_digest(digest_code(raw_token), self.clock())
        if not user:
            return AuthFailure(AuthErrorCode.INVALID_TOKEN, "Invalid token or token has expired")

        await self.users.update_password(user.id, await self.passwords.hash(password))
        logger.info("Password reset completed for user %s", user.id)
        return AuthSuccess(message="Password data updated successfully", clear_session=True)

    async def resolve_session(self, token: str) -> Optional[User]:
        """Return the user an access token belongs to, or None if invalid or the user is gone."""
        subject = self.tokens.verify(token)
        if subject is None:
            return None
        return await self.user_for_subject(subject)

    async def user_for_subject(self, subject: str) -> Optional[User]:
        """Re-resolve a verified token subject; None if the account no longer exists."""
        try:
            user_id = int(subject)
        except ValueError:
            return None
        return await self.users.get_by_id(user_id)

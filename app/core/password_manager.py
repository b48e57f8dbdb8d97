"""Password hashing and verification."""
import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

logger = logging.getLogger(__name__)


class PasswordPolicyError(Exception):
    """Exception raised when a password cannot be hashed."""
    pass


class PasswordManager:
    """Argon2id password manager.

    The default parameters put a single hash at roughly 100-200ms on
    commodity hardware, which bounds the cost of brute forcing the login
    endpoint. Comparison is constant time inside argon2-cffi.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 1):
        self.ph = PasswordHasher(
            time_cost=time_cost,        # Number of iterations
            memory_cost=memory_cost,    # Memory usage in KiB
            parallelism=parallelism,    # Number of parallel threads
            hash_len=32,
            salt_len=16
        )
        # Verified against when the email is unknown so both login paths cost the same
        self._dummy_hash = self.ph.hash("dummy-password-for-timing")
        logger.info(f"Using Argon2id for password hashing (t={time_cost}, m={memory_cost}KiB)")

    def hash_password(self, password: str) -> str:
        """Hash a password using Argon2id."""
        try:
            return self.ph.hash(password)
        except Exception as e:
            logger.error(f"Password hashing failed: {e}")
            raise PasswordPolicyError("Password hashing failed") from e

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        try:
            return self.ph.verify(hashed_password, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError) as e:
            logger.warning(f"Stored password hash could not be verified: {e}")
            return False

    def dummy_verify(self, password: str) -> bool:
        """Spend one verification's worth of work; always returns False."""
        self.verify_password(password, self._dummy_hash)
        return False

    def needs_rehash(self, hashed_password: str) -> bool:
        """Check if password hash was produced with outdated parameters."""
        try:
            return self.ph.check_needs_rehash(hashed_password)
        except InvalidHashError:
            return True

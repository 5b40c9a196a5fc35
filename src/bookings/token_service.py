import logging
import secrets
import string

from src.bookings.exceptions import EntropySourceUnavailable

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
MIN_TOKEN_LENGTH = 10

class TokenGenerator:
    """Generates fixed-length, URL-safe booking tokens from the OS CSPRNG.

    Uniqueness is not guaranteed here; the booking store retries on collision.
    """

    def __init__(self, length: int = 12, alphabet: str = TOKEN_ALPHABET):
        if length < MIN_TOKEN_LENGTH:
            raise ValueError(f"Token length must be at least {MIN_TOKEN_LENGTH}, got {length}")
        self.length = length
        self.alphabet = alphabet

    def generate(self) -> str:
        try:
            return "".join(secrets.choice(self.alphabet) for _ in range(self.length))
        except (NotImplementedError, OSError) as e:
            logger.critical(f"Entropy source unavailable: {e}")
            raise EntropySourceUnavailable(f"Random source unavailable: {e}") from e

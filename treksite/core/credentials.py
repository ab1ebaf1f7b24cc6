"""
Admin credential generation.

Every random choice, including the final shuffle, comes from the OS CSPRNG.
Encrypted tokens are base64(salt | nonce | AES-256-GCM ciphertext) with the
key derived from a passphrase by PBKDF2-SHA256.
"""
import base64
import logging
import os
import secrets
import string
from random import SystemRandom

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

ALPHANUMERIC = string.ascii_uppercase + string.ascii_lowercase + string.digits
UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SPECIAL = '!@#$%^&*()_+-=[]{}|;:,.<>?'

MIN_PASSWORD_LENGTH = 12
DEFAULT_PASSWORD_LENGTH = 16

PBKDF2_ITERATIONS = 100_000
SALT_SIZE = 16
NONCE_SIZE = 12

_system_random = SystemRandom()


def generate_random_string(length: int) -> str:
    """Random alphanumeric string"""
    return ''.join(secrets.choice(ALPHANUMERIC) for _ in range(length))


def generate_username() -> str:
    return f"admin_{generate_random_string(8)}"


def generate_strong_password(length: int = DEFAULT_PASSWORD_LENGTH) -> str:
    """
    Password with at least one uppercase letter, lowercase letter, digit and
    special character.

    Raises:
        ValueError: length is below MIN_PASSWORD_LENGTH
    """
    if length < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password length must be at least {MIN_PASSWORD_LENGTH}")

    all_chars = UPPERCASE + LOWERCASE + DIGITS + SPECIAL
    chars = [
        secrets.choice(UPPERCASE),
        secrets.choice(LOWERCASE),
        secrets.choice(DIGITS),
        secrets.choice(SPECIAL),
    ]
    chars.extend(secrets.choice(all_chars) for _ in range(length - len(chars)))

    _system_random.shuffle(chars)
    return ''.join(chars)


def _derive_key(secret_key: str, salt: bytes) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(secret_key.encode())


def encrypt_credential(data: str, secret_key: str) -> str:
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    ciphertext = AESGCM(_derive_key(secret_key, salt)).encrypt(nonce, data.encode(), None)
    return base64.b64encode(salt + nonce + ciphertext).decode()


def decrypt_credential(token: str, secret_key: str) -> str:
    """
    Reverse encrypt_credential.

    Raises:
        cryptography.exceptions.InvalidTag: wrong key or tampered token
        ValueError: token is not valid base64 or is too short
    """
    raw = base64.b64decode(token.encode(), validate=True)
    if len(raw) <= SALT_SIZE + NONCE_SIZE:
        raise ValueError("Credential token is too short")
    salt = raw[:SALT_SIZE]
    nonce = raw[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
    ciphertext = raw[SALT_SIZE + NONCE_SIZE:]
    return AESGCM(_derive_key(secret_key, salt)).decrypt(nonce, ciphertext, None).decode()


def log_credential_access(username: str, action: str, user=None):
    """Record that a credential was generated or read. Never logs the secret itself."""
    from .utils import create_audit_log

    logger.info(f"[AUDIT LOG] Action: {action}, User: {username}")
    return create_audit_log(
        action=action,
        model_name='SystemCredential',
        object_id=username,
        object_name=username,
        user=user,
    )

# Vault - Encryption Service
#
# Password + random salt → encryption key (scrypt, memory-hard)
# Item payload encryption (AES-256-GCM, authenticated)
# Self-contained blobs: salt ‖ nonce ‖ tag ‖ ciphertext, base64 for the catalog

import base64
import binascii
import os
import string
from typing import List, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .exceptions import DecryptionError, ValidationError


MIN_PASSWORD_LENGTH = 10
SPECIAL_CHARACTERS = "@$!%*#?&^"


def password_policy_errors(password: str) -> List[str]:
    """
    List the password rules a candidate fails to meet.

    Rules (fixed, not configurable):
    - At least 10 characters
    - At least one letter
    - At least one number
    - At least one of @ $ ! % * # ? & ^

    Returns:
        Human-readable messages, empty when the password is acceptable
    """
    if not isinstance(password, str):
        return ["Password must be a string"]

    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not any(c in string.ascii_letters for c in password):
        errors.append("Password must contain at least one letter")
    if not any(c in string.digits for c in password):
        errors.append("Password must contain at least one number")
    if not any(c in SPECIAL_CHARACTERS for c in password):
        errors.append(f"Password must contain at least one special character ({SPECIAL_CHARACTERS})")
    return errors


def validate_password(password: str) -> bool:
    """True iff the password satisfies every policy rule."""
    return not password_policy_errors(password)


def require_valid_password(password: str) -> None:
    """Raise ValidationError unless the password satisfies the policy."""
    errors = password_policy_errors(password)
    if errors:
        raise ValidationError("Invalid password format: " + "; ".join(errors))


class EncryptionService:
    """
    Handles encryption/decryption of vault payloads.

    Flow:
    1. Caller supplies the unlock password with every call
    2. A fresh salt is drawn and scrypt derives a 256-bit key
    3. AES-256-GCM encrypts the payload under a fresh nonce
    4. Salt, nonce and tag travel inside the blob, so nothing else is stored

    The scrypt cost is a module constant; changing it makes existing blobs
    undecryptable.
    """

    # scrypt parameters: 2**15 * 8 * 128 bytes = 32 MiB per derivation
    SCRYPT_N = 2 ** 15
    SCRYPT_R = 8
    SCRYPT_P = 1
    KEY_LENGTH = 32    # 256 bits for AES-256
    SALT_LENGTH = 32   # 256-bit salt
    NONCE_LENGTH = 12  # 96-bit nonce for GCM
    TAG_LENGTH = 16    # GCM authentication tag

    HEADER_SIZE = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH

    @staticmethod
    def derive_key(password: str, salt: bytes) -> bytes:
        """
        Derive an encryption key from a password using scrypt.

        Args:
            password: User's vault password
            salt: Random salt embedded in the blob

        Returns:
            256-bit encryption key
        """
        kdf = Scrypt(
            salt=salt,
            length=EncryptionService.KEY_LENGTH,
            n=EncryptionService.SCRYPT_N,
            r=EncryptionService.SCRYPT_R,
            p=EncryptionService.SCRYPT_P,
            backend=default_backend(),
        )
        return kdf.derive(password.encode("utf-8"))

    @staticmethod
    def encrypt_bytes(plaintext: Union[bytes, str], password: str) -> bytes:
        """
        Encrypt a payload with AES-256-GCM under a password.

        Returns:
            salt(32) + nonce(12) + tag(16) + ciphertext
        """
        require_valid_password(password)
        if isinstance(plaintext, str):
            plaintext = plaintext.encode("utf-8")

        salt = os.urandom(EncryptionService.SALT_LENGTH)
        nonce = os.urandom(EncryptionService.NONCE_LENGTH)
        key = EncryptionService.derive_key(password, salt)

        # AESGCM appends the tag; move it in front of the ciphertext
        sealed = AESGCM(key).encrypt(nonce, plaintext, None)
        ciphertext = sealed[:-EncryptionService.TAG_LENGTH]
        tag = sealed[-EncryptionService.TAG_LENGTH:]
        return salt + nonce + tag + ciphertext

    @staticmethod
    def decrypt_bytes(blob: bytes, password: str) -> bytes:
        """
        Decrypt a raw blob produced by encrypt_bytes().

        Raises:
            ValidationError: Password fails policy (checked first)
            DecryptionError: Wrong password, truncated, corrupted or foreign blob
        """
        require_valid_password(password)
        if not isinstance(blob, (bytes, bytearray)) or len(blob) < EncryptionService.HEADER_SIZE:
            raise DecryptionError()

        salt_end = EncryptionService.SALT_LENGTH
        nonce_end = salt_end + EncryptionService.NONCE_LENGTH
        salt = bytes(blob[:salt_end])
        nonce = bytes(blob[salt_end:nonce_end])
        tag = bytes(blob[nonce_end:EncryptionService.HEADER_SIZE])
        ciphertext = bytes(blob[EncryptionService.HEADER_SIZE:])

        key = EncryptionService.derive_key(password, salt)
        try:
            return AESGCM(key).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError(cause=e) from e

    @staticmethod
    def encode_for_storage(data: bytes) -> str:
        """Base64-encode a raw blob so it fits in a JSON catalog."""
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def decode_from_storage(data: str) -> bytes:
        """Decode a printable blob; any malformed input is a DecryptionError."""
        try:
            return base64.b64decode(data, validate=True)
        except (TypeError, ValueError, binascii.Error) as e:
            raise DecryptionError(cause=e) from e


def encrypt(plaintext: Union[bytes, str], password: str) -> str:
    """Encrypt a payload into a printable, self-contained blob."""
    return EncryptionService.encode_for_storage(
        EncryptionService.encrypt_bytes(plaintext, password)
    )


def decrypt(blob: str, password: str) -> bytes:
    """Decrypt a printable blob produced by encrypt()."""
    require_valid_password(password)
    return EncryptionService.decrypt_bytes(
        EncryptionService.decode_from_storage(blob), password
    )

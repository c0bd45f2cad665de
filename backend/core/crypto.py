"""
Identifier encryption helpers

Stored id-numbers look like ``<ciphertext>$<key>``: the ciphertext is the
OpenSSL "Salted__" passphrase format (EVP_BytesToKey with MD5, AES-256-CBC,
PKCS7 padding), base64 encoded. The key is the passphrase it was sealed with.
"""
import base64
import binascii
import hashlib
import os
import secrets
from typing import Tuple

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

ID_DELIMITER = "$"
SALT_HEADER = b"Salted__"
KEY_SIZE = 32
IV_SIZE = 16


class IdentifierDecryptError(ValueError):
    """A stored identifier could not be split or decrypted"""


def _evp_bytes_to_key(passphrase: bytes, salt: bytes) -> Tuple[bytes, bytes]:
    derived = b""
    block = b""
    while len(derived) < KEY_SIZE + IV_SIZE:
        block = hashlib.md5(block + passphrase + salt).digest()
        derived += block
    return derived[:KEY_SIZE], derived[KEY_SIZE:KEY_SIZE + IV_SIZE]


def aes_encrypt(plaintext: str, passphrase: str) -> str:
    salt = os.urandom(8)
    key, iv = _evp_bytes_to_key(passphrase.encode("utf-8"), salt)

    padder = padding.PKCS7(128).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    sealed = encryptor.update(padded) + encryptor.finalize()
    return base64.b64encode(SALT_HEADER + salt + sealed).decode("ascii")


def aes_decrypt(ciphertext: str, passphrase: str) -> str:
    """Decrypt an OpenSSL-salted base64 payload, raising IdentifierDecryptError on any failure"""
    try:
        raw = base64.b64decode(ciphertext, validate=True)
    except binascii.Error as e:
        raise IdentifierDecryptError(f"ciphertext is not valid base64: {e}") from e

    if not raw.startswith(SALT_HEADER) or len(raw) < 32 or (len(raw) - 16) % 16:
        raise IdentifierDecryptError("ciphertext is not in salted AES format")

    salt = raw[8:16]
    key, iv = _evp_bytes_to_key(passphrase.encode("utf-8"), salt)
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(raw[16:]) + decryptor.finalize()

    try:
        unpadder = padding.PKCS7(128).unpadder()
        data = unpadder.update(padded) + unpadder.finalize()
        return data.decode("utf-8")
    except ValueError as e:
        # Wrong key or corrupted payload
        raise IdentifierDecryptError(f"failed to decrypt identifier: {e}") from e


def split_stored_identifier(stored: str) -> Tuple[str, str]:
    if not stored or ID_DELIMITER not in stored:
        raise IdentifierDecryptError("stored identifier has no key delimiter")
    ciphertext, key = stored.split(ID_DELIMITER, 1)
    return ciphertext, key


def decrypt_stored_identifier(stored: str) -> str:
    ciphertext, key = split_stored_identifier(stored)
    return aes_decrypt(ciphertext, key)


def encrypt_identifier(plaintext: str) -> str:
    """Seal an id-number with a fresh random key, in ``ciphertext$key`` form"""
    key = secrets.token_hex(16)
    return f"{aes_encrypt(plaintext, key)}{ID_DELIMITER}{key}"


def hash_identifier(plaintext: str) -> str:
    return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()

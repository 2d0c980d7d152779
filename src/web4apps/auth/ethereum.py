"""
Ethereum personal-message signature recovery.

Wallets sign ``"\\x19Ethereum Signed Message:\\n" + len(message) + message``
(EIP-191 version 0x45). The signature is 65 bytes ``r || s || v`` rendered as
hex; ``v`` is 27/28 from most wallets and 0/1 from some hardware signers.

Uses coincurve for secp256k1 recovery and pycryptodome for Keccak-256.
"""

from __future__ import annotations

from coincurve import PublicKey
from Crypto.Hash import keccak

from web4apps.errors import InvalidSignature

MESSAGE_PREFIX = b"\x19Ethereum Signed Message:\n"


def keccak256(data: bytes) -> bytes:
    """Keccak-256 digest (the pre-standard SHA-3 used by Ethereum)."""
    return keccak.new(digest_bits=256, data=data).digest()


def hash_personal_message(message: str) -> bytes:
    """
    Hash a message the way ``personal_sign`` does.

    The pre-image is the fixed prefix, the decimal byte length of the UTF-8
    message, then the message bytes.
    """
    msg_bytes = message.encode("utf-8")
    payload = MESSAGE_PREFIX + str(len(msg_bytes)).encode("ascii") + msg_bytes
    return keccak256(payload)


def recover_address(message: str, signature: str) -> str:
    """
    Recover the signer address of a personal message.

    Args:
        message: The exact string that was signed.
        signature: Hex-encoded 65-byte signature, ``0x`` prefix optional.

    Returns:
        The EIP-55 checksummed signer address.

    Raises:
        InvalidSignature: If the signature is malformed or recovery fails.
    """
    sig_bytes = _decode_signature(signature)
    recovery_id = _recovery_id(sig_bytes[64])

    try:
        pubkey = PublicKey.from_signature_and_message(
            sig_bytes[:64] + bytes([recovery_id]),
            hash_personal_message(message),
            hasher=None,
        )
    except Exception as e:
        raise InvalidSignature from e
    return public_key_to_address(pubkey)


def verify_signature(message: str, signature: str, claimed_address: str) -> bool:
    """
    Verify that ``signature`` over ``message`` was produced by ``claimed_address``.

    Address comparison is case-insensitive. Never raises: any recovery failure
    is reported as ``False``.
    """
    if not signature or not claimed_address:
        return False
    try:
        recovered = recover_address(message, signature)
    except InvalidSignature:
        return False
    return recovered.lower() == claimed_address.lower()


def public_key_to_address(pubkey: PublicKey) -> str:
    """Derive the checksummed account address of a secp256k1 public key."""
    uncompressed = pubkey.format(compressed=False)
    digest = keccak256(uncompressed[1:])
    return to_checksum_address("0x" + digest[-20:].hex())


def to_checksum_address(address: str) -> str:
    """Apply EIP-55 mixed-case checksum encoding to a hex address."""
    hex_addr = address.lower().removeprefix("0x")
    if len(hex_addr) != 40:
        msg = f"Invalid address length: {len(hex_addr)}"
        raise ValueError(msg)
    digest = keccak256(hex_addr.encode("ascii")).hex()
    return "0x" + "".join(
        ch.upper() if ch.isalpha() and int(digest[i], 16) >= 8 else ch
        for i, ch in enumerate(hex_addr)
    )


def _decode_signature(signature: str) -> bytes:
    if not isinstance(signature, str):
        raise InvalidSignature
    raw = signature.removeprefix("0x").removeprefix("0X")
    try:
        sig_bytes = bytes.fromhex(raw)
    except ValueError as e:
        raise InvalidSignature from e
    if len(sig_bytes) != 65:
        raise InvalidSignature
    return sig_bytes


def _recovery_id(v: int) -> int:
    """Map the ``v`` byte to a secp256k1 recovery id (0 or 1)."""
    if v in (27, 28):
        return v - 27
    if v in (0, 1):
        return v
    raise InvalidSignature

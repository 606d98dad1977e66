"""
messaging_auth/signatures.py

Signing contract shared with clients + signer recovery.

Clients sign (EIP-191 personal_sign):

    MESSAGE_PREFIX + nonce

with the private key behind their address. The server never sees a public
key; it recovers the signer address from (message, signature) on secp256k1
and compares it with the claimed address.

MESSAGE_PREFIX is part of the wire contract. Any change to it, including
whitespace, breaks every deployed client and needs a protocol version bump.
"""

from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from .errors import SignatureMismatch

SIGNING_PROTOCOL_VERSION = 1

# NOTE: the second line is two spaces, not empty.
MESSAGE_PREFIX = (
    "Hi there from Connext! Sign this message to make sure that no one can "
    "communicate on the Connext Network on your behalf. This will not cost "
    "you any Ether!\n"
    "  \n"
    "To stop hackers from using your wallet, here's a unique message ID that "
    "they can't guess: "
)


def build_signing_message(nonce: str) -> str:
    return MESSAGE_PREFIX + nonce


def recover_signer(message: str, signature: str) -> Optional[str]:
    """
    Recover the checksummed address that produced `signature` over `message`.

    Returns None when the signature cannot be decoded or does not recover to
    any key.
    """
    signable = encode_defunct(text=message)
    try:
        return Account.recover_message(signable, signature=signature)
    except Exception:
        # eth_account/eth_keys raise a zoo of types for malformed input
        return None


def verify_signer(identity: str, message: str, signature: str) -> str:
    """
    Check that `signature` over `message` was made by `identity`.

    Comparison is an exact string match: a lowercase claim does not match the
    checksummed address recovery returns.
    """
    recovered = recover_signer(message, signature)
    if recovered is None:
        raise SignatureMismatch(expected=identity, reason="signature could not be recovered")
    if recovered != identity:
        raise SignatureMismatch(expected=identity, recovered=recovered)
    return recovered

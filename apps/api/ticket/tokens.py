import hashlib
import hmac
import secrets
import time

# No 0/O, 1/I: public ids get read aloud and typed from paper tickets.
PUBLIC_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
PUBLIC_ID_LENGTH = 10
TOKEN_BYTES = 32


def generate_public_id(length: int = PUBLIC_ID_LENGTH) -> str:
    return "".join(secrets.choice(PUBLIC_ID_ALPHABET) for _ in range(length))


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_matches(token: str | None, token_hash: str | None) -> bool:
    if not token or not token_hash:
        return False
    return hmac.compare_digest(hash_token(token), token_hash)


def generate_ticket_number() -> str:
    millis = int(time.time() * 1000)
    return f"T{str(millis)[-8:]}"

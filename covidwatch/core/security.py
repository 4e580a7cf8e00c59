"""
Password hashing (bcrypt, with legacy SHA-256 migration) and session
cookie signing.
"""

from __future__ import annotations

import logging

from fastapi.concurrency import run_in_threadpool
from itsdangerous import BadSignature, Signer
from passlib.context import CryptContext

from covidwatch.core.config import settings

logger = logging.getLogger(__name__)

# bcrypt is the current scheme.  ``hex_sha256`` matches the unsalted
# SHA2(pass, 256) digests of the old schema and is only ever verified.
pwd_context = CryptContext(
    schemes=["bcrypt", "hex_sha256"],
    deprecated=["hex_sha256"],
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

_LEGACY_SCHEME = "hex_sha256"


# ── Passwords ───────────────────────────────────────────────────────
def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def is_legacy_hash(hashed: str) -> bool:
    return pwd_context.identify(hashed) == _LEGACY_SCHEME


def verify_password(plain: str, hashed: str) -> bool:
    matched, _ = verify_and_update(plain, hashed)
    return matched


def verify_and_update(plain: str, hashed: str) -> tuple[bool, str | None]:
    """Verify ``plain`` against ``hashed``.

    Returns ``(matched, new_hash)``; ``new_hash`` is a bcrypt hash only
    when the stored hash used the legacy scheme and matched.
    """
    if not hashed or pwd_context.identify(hashed) is None:
        logger.warning("Stored password hash has an unknown format")
        pwd_context.dummy_verify()
        return False, None
    return pwd_context.verify_and_update(plain, hashed)


def dummy_verify() -> None:
    """Spend the time of a real verify so unknown usernames are not detectable."""
    pwd_context.dummy_verify()


async def aget_password_hash(plain: str) -> str:
    return await run_in_threadpool(get_password_hash, plain)


async def averify_and_update(plain: str, hashed: str | None) -> tuple[bool, str | None]:
    if hashed is None:
        await run_in_threadpool(dummy_verify)
        return False, None
    return await run_in_threadpool(verify_and_update, plain, hashed)


# ── Session cookie ──────────────────────────────────────────────────
_signer = Signer(settings.SECRET_KEY, salt="covidwatch-session")


def sign_session_id(session_id: str) -> str:
    return _signer.sign(session_id).decode("utf-8")


def unsign_session_id(value: str) -> str | None:
    """Return the session id from a cookie value, or ``None`` if tampered."""
    try:
        return _signer.unsign(value).decode("utf-8")
    except BadSignature:
        return None

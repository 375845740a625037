"""Group invite codes.

Invite codes get read aloud and retyped from chat messages, so they use the
Crockford base32 alphabet: no I, L, O or U. On input, dashes and spaces are
dropped and the look-alike letters are folded onto the digits they resemble,
which makes "abcd-efgh", "ABCD EFGH" and "ABCDEFGH" the same code.
"""

from __future__ import annotations

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.db.models import Group

INVITE_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
INVITE_LENGTH = 8
MAX_ATTEMPTS = 10

_LOOKALIKES = str.maketrans({"I": "1", "L": "1", "O": "0"})
_SEPARATORS = str.maketrans("", "", "- ")


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(INVITE_LENGTH))


def normalize_invite_code(code: str) -> str:
    """Canonical stored form of a code as a user typed it."""
    return code.strip().upper().translate(_SEPARATORS).translate(_LOOKALIKES)


def is_valid_invite_code(code: str) -> bool:
    """True if a normalized code could have been issued."""
    return len(code) == INVITE_LENGTH and all(c in INVITE_ALPHABET for c in code)


async def generate_unique_invite_code(db: AsyncSession) -> str:
    """A fresh code no group holds yet.

    Raises:
        RuntimeError: If every attempt collided.
    """
    for _ in range(MAX_ATTEMPTS):
        code = generate_invite_code()
        taken = await db.execute(select(Group.id).where(Group.invite_code == code))
        if taken.scalar_one_or_none() is None:
            return code
    raise RuntimeError(f"No free invite code after {MAX_ATTEMPTS} attempts")

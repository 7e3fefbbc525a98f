from __future__ import annotations

import re

from sqlalchemy.orm import Session

from app.models.matrix import member_matrices
from app.models.member import Member

_NON_DIGITS = re.compile(r"\D")
BRAZIL_PREFIX = "55"


def phone_candidates(phone: str | None) -> list[str]:
    """Digit-only forms a stored phone may take.

    Brazilian mobile numbers (55 + area code + 8 or 9 digits) are matched with
    and without the extra leading 9.
    """

    digits = _NON_DIGITS.sub("", phone or "")
    if not digits:
        return []
    if not digits.startswith(BRAZIL_PREFIX):
        return [digits]
    with_nine = digits[:4] + "9" + digits[4:] if len(digits) == 12 else digits
    without_nine = digits[:4] + digits[5:] if len(digits) == 13 and digits[4] == "9" else digits
    return sorted({with_nine, without_nine})


def check_phone_exists(db: Session, phone: str | None, matrix_id: int) -> bool:
    candidates = phone_candidates(phone)
    if not candidates:
        return False
    row = (
        db.query(Member.id)
        .join(member_matrices, member_matrices.c.member_id == Member.id)
        .filter(member_matrices.c.matrix_id == matrix_id, Member.phone.in_(candidates))
        .first()
    )
    return row is not None

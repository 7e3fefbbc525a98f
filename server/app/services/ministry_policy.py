"""Ministry type eligibility and hierarchy rules.

Ministry types form a total order of authority. Each eligibility predicate is a
threshold on that order, so the nesting pastor < discipulador < leader <
vice-leader holds by construction.
"""

from __future__ import annotations

import enum
from typing import Literal, Optional

from app.core.errors import InsufficientAuthority


class MinistryType(str, enum.Enum):
    PRESIDENT_PASTOR = "PRESIDENT_PASTOR"
    PASTOR = "PASTOR"
    DISCIPULADOR = "DISCIPULADOR"
    LEADER = "LEADER"
    LEADER_IN_TRAINING = "LEADER_IN_TRAINING"
    MEMBER = "MEMBER"
    REGULAR_ATTENDEE = "REGULAR_ATTENDEE"
    VISITOR = "VISITOR"


# Lower rank means more authority, mirroring Ministry.priority.
_RANKS: dict[MinistryType, int] = {ministry_type: rank for rank, ministry_type in enumerate(MinistryType)}
_LOWEST_RANK = len(_RANKS)

_LABELS: dict[MinistryType, str] = {
    MinistryType.PRESIDENT_PASTOR: "Pastor Presidente",
    MinistryType.PASTOR: "Pastor",
    MinistryType.DISCIPULADOR: "Discipulador",
    MinistryType.LEADER: "Líder",
    MinistryType.LEADER_IN_TRAINING: "Líder em Treinamento",
    MinistryType.MEMBER: "Membro",
    MinistryType.REGULAR_ATTENDEE: "Frequentador Assíduo",
    MinistryType.VISITOR: "Visitante",
}
DEFAULT_LABEL = _LABELS[MinistryType.MEMBER]

HierarchyRole = Literal["pastor", "discipulador", "leader", "viceLeader"]

_MINIMUM_FOR_ROLE: dict[str, MinistryType] = {
    "pastor": MinistryType.PASTOR,
    "discipulador": MinistryType.DISCIPULADOR,
    "leader": MinistryType.LEADER,
    "viceLeader": MinistryType.LEADER_IN_TRAINING,
}


def _coerce(ministry_type: Optional[str]) -> Optional[MinistryType]:
    if ministry_type is None:
        return None
    try:
        return MinistryType(ministry_type)
    except ValueError:
        return None


def rank_of(ministry_type: Optional[str]) -> int:
    """Authority rank of a type; a missing or unknown type ranks below every known one."""

    coerced = _coerce(ministry_type)
    return _RANKS[coerced] if coerced is not None else _LOWEST_RANK


def get_minimum_ministry_type_for(role: HierarchyRole) -> MinistryType:
    return _MINIMUM_FOR_ROLE[role]


def is_eligible_for(ministry_type: Optional[str], role: HierarchyRole) -> bool:
    return rank_of(ministry_type) <= _RANKS[get_minimum_ministry_type_for(role)]


def can_be_pastor(ministry_type: Optional[str]) -> bool:
    return is_eligible_for(ministry_type, "pastor")


def can_be_discipulador(ministry_type: Optional[str]) -> bool:
    return is_eligible_for(ministry_type, "discipulador")


def can_be_leader(ministry_type: Optional[str]) -> bool:
    return is_eligible_for(ministry_type, "leader")


def can_be_vice_leader(ministry_type: Optional[str]) -> bool:
    return is_eligible_for(ministry_type, "viceLeader")


def ministry_type_label(ministry_type: Optional[str]) -> str:
    coerced = _coerce(ministry_type)
    return _LABELS[coerced] if coerced is not None else DEFAULT_LABEL


def is_pastor_tier(ministry_type: Optional[str]) -> bool:
    return can_be_pastor(ministry_type)


def ensure_can_assign_priority(
    *,
    assigner_priority: Optional[int],
    target_priority: int,
    assigner_is_admin: bool = False,
    assigner_ministry_type: Optional[str] = None,
) -> None:
    """Reject assigning a ministry at or above the assigner's own rank.

    Admins and pastor-tier assigners bypass the comparison. An assigner with no
    ministry position cannot assign any.
    """

    if assigner_is_admin or is_pastor_tier(assigner_ministry_type):
        return
    if assigner_priority is None:
        raise InsufficientAuthority("You have no ministry position to assign positions from")
    if target_priority <= assigner_priority:
        raise InsufficientAuthority("You can only assign ministry positions below your own")

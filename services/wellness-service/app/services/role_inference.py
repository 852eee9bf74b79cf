"""
Role Inference
Role heuristics and coach-reference matching, kept free of I/O
"""

import re
from typing import Iterable, Optional, Tuple

from app.models.coach import Coach
from app.models.session import Role

COACH_MARKER = "coach"

_PUNCTUATION = re.compile(r"[._\-']+")
_WHITESPACE = re.compile(r"\s+")


def infer_role(email: str) -> Role:
    """Coach iff the email contains the coach marker; there is no verification step"""
    return Role.COACH if COACH_MARKER in email else Role.USER


def email_local_part(email: str) -> str:
    return email.split("@", 1)[0]


def exact_match_name(email: str) -> str:
    """Name used for the exact-match query, e.g. jane.doe@x.com -> 'jane doe'"""
    return email_local_part(email).replace(".", " ")


def normalize_name(value: Optional[str]) -> str:
    """Lower-case, punctuation to spaces, collapsed whitespace"""
    if not value:
        return ""
    value = _PUNCTUATION.sub(" ", value.lower())
    return _WHITESPACE.sub(" ", value).strip()


def match_coach(
    email: str,
    display_name: Optional[str],
    candidates: Iterable[Coach],
) -> Optional[str]:
    """
    Scan coach records for a normalized-name match

    The email local part is compared first, then the display name. The first
    candidate in iteration order that matches wins.

    Returns:
        Matching coach id, or None
    """
    keys = [normalize_name(email_local_part(email))]
    if display_name:
        keys.append(normalize_name(display_name))
    keys = [key for key in keys if key]
    if not keys:
        return None

    candidates = list(candidates)
    for key in keys:
        for coach in candidates:
            if normalize_name(coach.name) == key:
                return coach.id
    return None


def resolve_coach_reference(
    email: str,
    display_name: Optional[str],
    candidates: Iterable[Coach],
    exact_matches: Iterable[Coach] = (),
) -> Tuple[Role, Optional[str]]:
    """
    Infer the role and, for coaches, the linked coach record

    Args:
        email: Email the identity registered with
        display_name: Display name from social sign-in, if any
        candidates: All coach records, in store iteration order
        exact_matches: Coach records whose name equals exact_match_name(email)

    Returns:
        tuple: (role, coach id or None)
    """
    role = infer_role(email)
    if role != Role.COACH:
        return role, None

    for coach in exact_matches:
        return role, coach.id

    return role, match_coach(email, display_name, candidates)

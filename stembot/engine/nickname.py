"""
stembot.engine.nickname — Canonical Nicknames
==============================================

Guild nicknames follow one of two shapes::

    名前(学籍番号)        current members:  "Taro(12345)"
    名前(N期卒業生)       alumni:           "Hanako(47期卒業生)"

:func:`format_nickname` builds them; :func:`extract_name` recovers the bare
name from whatever a member currently displays, accepting both ASCII and
full-width parentheses since members edit their own nicknames.
"""

from __future__ import annotations

import re

from stembot.constants import GRADUATE_SUFFIX, MAX_NICKNAME_LENGTH
from stembot.database.models import MemberStatus
from stembot.errors import ValidationError

# Shortest non-empty prefix followed by an opening bracket.
_NAME_BEFORE_BRACKET = re.compile(r"^(.+?)[(（]")
# A "(...)" or "（...）" group closing the string.
_TRAILING_GROUP = re.compile(r"[(（][^)）]*[)）]$")


def format_nickname(
    name: str,
    status: int,
    generation: int,
    student_number: str | None,
) -> str:
    """Build the canonical nickname for a member.

    Raises
    ------
    ValidationError
        If *name* is blank, a current member has no student number, the
        status is unknown, or the result exceeds Discord's nickname limit.
    """
    name = name.strip()
    if not name:
        raise ValidationError("name must not be empty")

    try:
        member_status = MemberStatus(status)
    except ValueError:
        raise ValidationError(f"Invalid member status: {status!r}")

    if member_status is MemberStatus.ALUMNUS:
        nickname = f"{name}({generation}{GRADUATE_SUFFIX})"
    else:
        if not student_number or not student_number.strip():
            raise ValidationError("Student number is missing for active member")
        nickname = f"{name}({student_number.strip()})"

    if len(nickname) > MAX_NICKNAME_LENGTH:
        raise ValidationError(
            f"Nickname {nickname!r} is longer than {MAX_NICKNAME_LENGTH} characters"
        )
    return nickname


def extract_name(display_name: str) -> str:
    """Return the name part of ``"名前(...)"`` / ``"名前（...）"``.

    The first bracket after a non-empty prefix ends the name.  A string
    without such a bracket is returned unaltered.
    """
    match = _NAME_BEFORE_BRACKET.match(display_name)
    if match:
        return match.group(1).strip()
    return display_name


def strip_trailing_group(nickname: str) -> str:
    """Drop a closing ``"(...)"`` or ``"（...）"`` group: ``"Taro(12345)"`` → ``"Taro"``."""
    return _TRAILING_GROUP.sub("", nickname).strip()

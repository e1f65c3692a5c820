"""
stembot.constants — Shared Labels & Limits
===========================================

Human-readable role labels used in sync reports, plus the nickname
affixes.  Import from here instead of spelling the strings in services.
"""

from __future__ import annotations

from stembot.database.models import MemberStatus

# ---------------------------------------------------------------------------
# Role labels (reported back as roles_assigned / roles_removed)
# ---------------------------------------------------------------------------
LEADER_LABEL = "班長"
MEMBER_LABEL = "部員"
VERIFIED_LABEL = "認証済み"

STATUS_LABELS: dict[MemberStatus, str] = {
    MemberStatus.JUNIOR: "中学生",
    MemberStatus.SENIOR: "高校生",
    MemberStatus.ALUMNUS: "OB",
}

GENERATION_SUFFIX = "期生"


def generation_label(generation: int) -> str:
    """``52`` → ``"52期生"``; also the name given to new generation roles."""
    return f"{generation}{GENERATION_SUFFIX}"


# ---------------------------------------------------------------------------
# Nicknames
# ---------------------------------------------------------------------------
GRADUATE_SUFFIX = "期卒業生"

# Discord rejects guild nicknames longer than this.
MAX_NICKNAME_LENGTH = 32

EVERYONE_ROLE_NAME = "@everyone"

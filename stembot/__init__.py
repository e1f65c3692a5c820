"""
stembot — Member Role & Nickname Reconciler for Discord
========================================================
Keeps a Discord guild's roles and nicknames in line with the membership
roster held in the club database.  Generation, team, leader, status,
member and verified roles are computed from the roster and applied with
the smallest set of additions and removals, for one member or the whole
roster.

Package layout::

    stembot/
    ├── config.py          # YAML → typed Python config (guild + role ids)
    ├── constants.py       # Role labels and nickname affixes
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # Roster tables (members, teams, generation roles)
    ├── engine/
    │   ├── roles.py       # Role policy evaluator + diff planner (pure)
    │   └── nickname.py    # Nickname formatting / name extraction (pure)
    ├── bot/
    │   ├── core.py        # discord.Client subclass + login helper
    │   └── gateway.py     # Guild-scoped platform wrapper
    ├── services/
    │   ├── member_service.py      # Roster reads + member directory
    │   ├── role_sync_service.py   # Single-member and bulk role sync
    │   ├── generation_service.py  # Generation role creation
    │   └── nickname_service.py    # Nickname read / update
    └── api/
        ├── main.py        # FastAPI app + lifespan
        ├── deps.py        # Dependency injection + bearer token guard
        └── routes/        # REST endpoints
"""

__version__ = "2.0.0"

"""
Temporary sudo lifecycle (single host, in-process).

- PrivilegeStore: principal -> Session, per-principal locking
- GrantEngine / RevokeEngine: host rule file + store + audit, all-or-nothing
- ExpirySweeper: periodic auto-revoke of expired sessions

Sessions are not persisted; a restart forgets them.
"""

from tempsudo.core.privilege.manager import PrivilegeManager
from tempsudo.core.privilege.store import PrivilegeStore
from tempsudo.core.privilege.sweeper import ExpirySweeper

__all__ = ["ExpirySweeper", "PrivilegeManager", "PrivilegeStore"]

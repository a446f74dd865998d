from __future__ import annotations

import grp
import os
import pwd
from typing import List, Protocol, Sequence

from tempsudo.core.errors import ProbeError


class SystemProbe(Protocol):
    """
    Host account queries consumed by the privilege core.
    """

    def exists(self, principal: str) -> bool: ...
    def groups(self, principal: str) -> List[str]: ...
    def list_principals(self) -> List[str]: ...


class PosixSystemProbe:
    """
    Reads the local account database through pwd/grp (NSS aware, no shelling out).
    """

    def __init__(self, *, home_roots: Sequence[str] = ("/home", "/Users"), logger=None):
        self.home_roots = tuple(str(r).rstrip("/") for r in home_roots)
        self.logger = logger

    def exists(self, principal: str) -> bool:
        if not principal:
            return False
        try:
            pwd.getpwnam(principal)
        except KeyError:
            return False
        except OSError as e:
            raise ProbeError(principal=principal, error=str(e)) from e
        return True

    def groups(self, principal: str) -> List[str]:
        try:
            pw = pwd.getpwnam(principal)
            gids = os.getgrouplist(principal, pw.pw_gid)
        except (KeyError, OSError) as e:
            if self.logger is not None:
                self.logger.debug(f"Group lookup failed for {principal}: {e}")
            return []
        out: List[str] = []
        for gid in gids:
            try:
                name = grp.getgrgid(gid).gr_name
            except KeyError:
                name = str(gid)
            if name not in out:
                out.append(name)
        return out

    def list_principals(self) -> List[str]:
        """Interactive accounts: those whose home directory sits under one of `home_roots`."""
        try:
            entries = pwd.getpwall()
        except OSError as e:
            if self.logger is not None:
                self.logger.warning(f"Listing host users failed: {e}")
            return []
        out: List[str] = []
        for pw in entries:
            home = str(pw.pw_dir or "")
            if any(home == root or home.startswith(root + "/") for root in self.home_roots):
                if pw.pw_name and pw.pw_name not in out:
                    out.append(pw.pw_name)
        return out

from __future__ import annotations

import os
import re
import shutil
import subprocess
import tempfile
from typing import List, Optional, Protocol

from tempsudo.core.errors import ArtifactRemovalError, ArtifactWriteError

# Conservative POSIX account name; anything else cannot be written into a rule line safely.
PRINCIPAL_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9_.-]{0,31}\$?")

# sudo skips include files whose names contain '.', so dots are spelled out in the file name.
_DOT = "_dot_"


def is_valid_principal(principal: str) -> bool:
    return bool(principal) and PRINCIPAL_RE.fullmatch(principal) is not None


def sudo_rule(principal: str) -> str:
    return f"{principal} ALL=(ALL) NOPASSWD:ALL\n"


class ArtifactWriter(Protocol):
    def artifact_ref(self, principal: str) -> str: ...
    def create(self, principal: str) -> str: ...
    def remove(self, artifact_ref: str) -> None: ...
    def list_artifacts(self) -> List[str]: ...


class SudoersArtifactWriter:
    """
    One sudoers drop-in file per principal: `<directory>/<prefix><principal>`.

    Files are written to a temp name first, chmod'ed, optionally checked with
    `visudo -cf`, then moved into place, so sudo never sees a partial rule.
    """

    def __init__(
        self,
        *,
        directory: str = "/etc/sudoers.d",
        prefix: str = "temp_sudo_",
        mode: int = 0o440,
        visudo_path: Optional[str] = "visudo",
        validate_with_visudo: bool = True,
        logger=None,
    ):
        self.directory = directory
        self.prefix = prefix
        self.mode = int(mode)
        self.visudo_path = visudo_path
        self.validate_with_visudo = bool(validate_with_visudo)
        self.logger = logger
        self._warned_no_visudo = False

    def artifact_ref(self, principal: str) -> str:
        if not is_valid_principal(principal):
            raise ArtifactWriteError("Invalid user name.", principal=principal)
        return os.path.join(self.directory, f"{self.prefix}{principal.replace('.', _DOT)}")

    def principal_for(self, artifact_ref: str) -> Optional[str]:
        name = os.path.basename(artifact_ref)
        if not name.startswith(self.prefix):
            return None
        return name[len(self.prefix) :].replace(_DOT, ".")

    def create(self, principal: str) -> str:
        ref = self.artifact_ref(principal)
        tmp: Optional[str] = None
        try:
            fd, tmp = tempfile.mkstemp(prefix=".tmp_", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(sudo_rule(principal))
            os.chmod(tmp, self.mode)
            self._check_syntax(tmp, principal=principal)
            os.replace(tmp, ref)
            tmp = None
        except OSError as e:
            raise ArtifactWriteError(principal=principal, path=ref, error=str(e)) from e
        finally:
            if tmp is not None:
                try:
                    os.remove(tmp)
                except OSError:
                    pass
        return ref

    def remove(self, artifact_ref: str) -> None:
        if os.path.dirname(os.path.abspath(artifact_ref)) != os.path.abspath(self.directory) or self.principal_for(artifact_ref) is None:
            raise ArtifactRemovalError("Refusing to remove a file outside the managed directory.", path=artifact_ref)
        try:
            os.remove(artifact_ref)
        except FileNotFoundError:
            # Already gone: the privilege is not in effect, which is the goal.
            if self.logger is not None:
                self.logger.warning(f"Sudo rule file already absent: {artifact_ref}")
        except OSError as e:
            raise ArtifactRemovalError(path=artifact_ref, error=str(e)) from e

    def list_artifacts(self) -> List[str]:
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        return sorted(os.path.join(self.directory, n) for n in names if n.startswith(self.prefix))

    # ---- internals ----
    def _check_syntax(self, path: str, *, principal: str) -> None:
        if not self.validate_with_visudo:
            return
        exe = shutil.which(self.visudo_path) if self.visudo_path else None
        if exe is None:
            if self.logger is not None and not self._warned_no_visudo:
                self.logger.warning(f"visudo not found ({self.visudo_path}); sudo rules are written unchecked.")
            self._warned_no_visudo = True
            return
        try:
            res = subprocess.run([exe, "-cf", path], capture_output=True, text=True, timeout=10)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ArtifactWriteError(principal=principal, error=f"visudo failed: {e}") from e
        if res.returncode != 0:
            raise ArtifactWriteError("Generated sudo rule failed validation.", principal=principal, visudo=str(res.stderr or res.stdout).strip())

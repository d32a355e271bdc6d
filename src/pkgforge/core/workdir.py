#!/usr/bin/env python3
"""Local scratch directory lifecycle."""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


class WorkdirManager:
    """Creates and removes the local workdir of one build.

    A workdir supplied by the caller is created if absent and is never
    removed; a temporary one is removed by cleanup() unless preserve is set.
    """

    def __init__(self, preserve: bool = False, prefix: str = "pkgforge-"):
        self.preserve = preserve
        self.prefix = prefix
        self.path: Optional[Path] = None
        self.owned = False

    def create(self, workdir: Optional[Union[str, Path]] = None) -> Path:
        """Create the workdir and return its path."""
        if workdir is not None:
            self.path = Path(workdir).resolve()
            self.path.mkdir(parents=True, exist_ok=True)
            self.owned = False
        else:
            self.path = Path(tempfile.mkdtemp(prefix=self.prefix))
            self.owned = True
        logger.debug("Workdir is %s", self.path)
        return self.path

    def cleanup(self) -> bool:
        """Remove the workdir; return True if it was removed."""
        if self.path is None or not self.owned:
            return False
        if self.preserve:
            logger.info("Preserving workdir %s", self.path)
            return False
        shutil.rmtree(self.path, ignore_errors=True)
        logger.debug("Removed workdir %s", self.path)
        return True

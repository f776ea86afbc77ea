r"""Per-request temporary workspace for report builds.

Each report owns one directory below a shared base directory, named by a
random UUID so concurrent requests never share files::

    {base_dir}/{uuid}/images/image{panel_id}.png
    {base_dir}/{uuid}/report.tex
    {base_dir}/{uuid}/report.xdv
    {base_dir}/{uuid}/report.pdf

Nothing is created until the first write; :meth:`Workspace.clean` removes
the whole tree and never raises.
"""

from __future__ import annotations

import shutil
import uuid
from pathlib import Path

from grafana_reporter.logging import get_logger, log_error, log_info

from .errors import WorkspaceIOError

logger = get_logger(__name__)

IMAGE_DIR = "images"
SOURCE_FILE = "report.tex"
INTERMEDIATE_FILE = "report.xdv"
OUTPUT_FILE = "report.pdf"


class Workspace:
    """Isolated filesystem area for one report request.

    Parameters
    ----------
    base_dir
        Directory under which the per-request root is allocated.
    name
        Optional root directory name; a random UUID when omitted.

    """

    def __init__(self, base_dir: Path | str, *, name: str | None = None) -> None:
        """Allocate (but do not create) a unique workspace root."""
        self._root = Path(base_dir) / (name or uuid.uuid4().hex)

    def __repr__(self) -> str:
        """Return a debug representation naming the root."""
        return f"Workspace({str(self._root)!r})"

    @property
    def root(self) -> Path:
        """Return the workspace root directory."""
        return self._root

    @property
    def image_dir(self) -> Path:
        """Return the directory holding panel snapshots."""
        return self._root / IMAGE_DIR

    @property
    def source_path(self) -> Path:
        """Return the path of the generated LaTeX source."""
        return self._root / SOURCE_FILE

    @property
    def intermediate_path(self) -> Path:
        """Return the path of the device-independent intermediate file."""
        return self._root / INTERMEDIATE_FILE

    @property
    def output_path(self) -> Path:
        """Return the path of the compiled PDF."""
        return self._root / OUTPUT_FILE

    def image_path(self, panel_id: int) -> Path:
        """Return the snapshot path for ``panel_id``."""
        return self.image_dir / f"image{panel_id}.png"

    def exists(self) -> bool:
        """Return True when the workspace root exists on disk."""
        return self._root.exists()

    def ensure(self, directory: Path | None = None) -> Path:
        """Create ``directory`` (default: the root) and its parents if absent.

        Raises
        ------
        WorkspaceIOError
            If the filesystem refuses to create the directory.

        """
        target = directory or self._root
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WorkspaceIOError.for_path("creating directory", target, exc) from exc
        return target

    def clean(self) -> None:
        """Remove the workspace tree.

        Safe to call repeatedly and when the workspace was never created.
        Failures are logged rather than raised so they never mask the
        outcome the caller already holds.
        """
        try:
            shutil.rmtree(self._root)
        except FileNotFoundError:
            return
        except OSError as exc:
            log_error(logger, "Error cleaning up workspace %s: %s", self._root, exc)
            return
        log_info(logger, "Removed workspace %s", self._root)

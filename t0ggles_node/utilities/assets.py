"""
Asset packaging — copies static node assets (the icon) into the distribution tree.

Each asset under <root>/t0ggles_node/ is copied to the same relative path under
<dest>/t0ggles_node/. Missing assets are skipped so the step never fails a build.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger("t0ggles_node.utilities.assets")

PACKAGE_DIR = "t0ggles_node"
ASSETS: Sequence[str] = (
    "assets/t0ggles.png",
)


def copy_assets(
    root: Optional[str] = None,
    dest: Optional[str] = None,
    assets: Sequence[str] = ASSETS,
) -> List[Path]:
    """
    Copy known assets into the distribution directory.

    Args:
        root: Project root (default: the directory holding the t0ggles_node package).
        dest: Distribution directory (default: <root>/dist).
        assets: Asset paths relative to the package directory.

    Returns:
        The destination paths that were written.
    """
    root_path = Path(root) if root else Path(__file__).resolve().parents[2]
    dest_path = Path(dest) if dest else root_path / "dist"
    source_dir = root_path / PACKAGE_DIR

    copied: List[Path] = []
    for relative in assets:
        source = source_dir / relative
        if not source.exists():
            logger.debug(f"Asset not found, skipping: {source}")
            continue

        destination = dest_path / PACKAGE_DIR / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        copied.append(destination)
        logger.info(f"Copied asset {source} -> {destination}")

    return copied

from pathlib import Path
from typing import Optional, Union


def normalize_path(path: Union[str, Path], root: Optional[Path] = None) -> Path:
    """Return ``path`` relative to ``root`` when it lies inside it.

    Paths outside ``root`` (or when no root is given) come back unchanged
    apart from the conversion to ``Path``.
    """
    path = Path(path)
    if root is None or not path.is_absolute():
        return path
    try:
        return path.relative_to(root)
    except ValueError:
        return path


def display_name(path: Union[str, Path]) -> str:
    """Base name shown in conflict listings."""
    return Path(path).name or str(path)

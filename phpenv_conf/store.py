import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Set, Tuple, Union

logger = logging.getLogger(__name__)

INI_SUFFIX = ".ini"

LINK_MODE_SYMLINK = "symlink"
LINK_MODE_COPY = "copy"
LINK_MODES = (LINK_MODE_SYMLINK, LINK_MODE_COPY)


@dataclass(frozen=True)
class FragmentListing:
    """Sorted, disjoint split of the available fragments by enabled state."""
    enabled: Tuple[str, ...]
    available: Tuple[str, ...]


def partition_fragments(available: Iterable[str], enabled: Iterable[str]) -> FragmentListing:
    """
    Splits the available fragment names into enabled and available-only.

    Names present only in `enabled` (e.g. a dangling link whose source was
    deleted by hand) are not reported.
    """
    enabled_set = set(enabled)
    names = sorted(set(available))
    return FragmentListing(
        enabled=tuple(n for n in names if n in enabled_set),
        available=tuple(n for n in names if n not in enabled_set),
    )


def fragment_name_from_path(path: Union[str, Path]) -> str:
    """Basename of `path` with a single trailing '.ini' removed, if any."""
    basename = Path(path).name
    if basename.endswith(INI_SUFFIX):
        return basename[:-len(INI_SUFFIX)]
    return basename


def _lexists(path: Path) -> bool:
    # A dangling symlink still marks the fragment as enabled.
    return path.is_symlink() or path.exists()


class FragmentStore:
    """
    Filesystem view of a PHP version's conf.d-available/ and conf.d/ pair.

    All methods take bare fragment names; the '.ini' suffix is added here.
    OSError from the underlying calls propagates to the caller.
    """

    def __init__(self, available_dir: Path, enabled_dir: Path, link_mode: str = LINK_MODE_SYMLINK):
        if link_mode not in LINK_MODES:
            raise ValueError(f"Unknown link mode '{link_mode}'.")
        self.available_dir = Path(available_dir)
        self.enabled_dir = Path(enabled_dir)
        self.link_mode = link_mode

    def ensure_directories(self):
        self.available_dir.mkdir(parents=True, exist_ok=True)
        self.enabled_dir.mkdir(parents=True, exist_ok=True)

    def available_path(self, name: str) -> Path:
        return self.available_dir / f"{name}{INI_SUFFIX}"

    def enabled_path(self, name: str) -> Path:
        return self.enabled_dir / f"{name}{INI_SUFFIX}"

    @staticmethod
    def _scan(directory: Path, files_only: bool = False) -> Set[str]:
        if not directory.is_dir():
            return set()
        return {
            entry.name[:-len(INI_SUFFIX)]
            for entry in directory.iterdir()
            if entry.name.endswith(INI_SUFFIX) and entry.name != INI_SUFFIX
            and (not files_only or entry.is_file())
        }

    def available_names(self) -> Set[str]:
        return self._scan(self.available_dir, files_only=True)

    def enabled_names(self) -> Set[str]:
        return self._scan(self.enabled_dir)

    def is_available(self, name: str) -> bool:
        return self.available_path(name).is_file()

    def is_enabled(self, name: str) -> bool:
        return _lexists(self.enabled_path(name))

    def import_file(self, source: Path, name: str) -> Path:
        """Copies `source` into the available store, replacing any previous copy."""
        target = self.available_path(name)
        self.available_dir.mkdir(parents=True, exist_ok=True)
        if target.exists() and Path(source).resolve() == target.resolve():
            logger.debug(f"'{source}' is already the stored copy of '{name}'.")
            return target
        if target.is_symlink():
            # Replace the link itself, never the file it points to.
            target.unlink()
        shutil.copy2(source, target)
        logger.debug(f"Copied '{source}' -> '{target}'")
        return target

    def link(self, name: str) -> Path:
        """Materializes the enabled entry for `name` according to the link mode."""
        source = self.available_path(name)
        entry = self.enabled_path(name)
        self.enabled_dir.mkdir(parents=True, exist_ok=True)
        if self.link_mode == LINK_MODE_COPY:
            if entry.is_symlink():
                entry.unlink()
            shutil.copy2(source, entry)
            logger.debug(f"Copied '{source}' -> '{entry}'")
        else:
            entry.symlink_to(source.resolve())
            logger.debug(f"Linked '{entry}' -> '{source.resolve()}'")
        return entry

    def refresh_copy(self, name: str) -> bool:
        """
        Re-copies an enabled entry in copy mode so it keeps duplicating the
        available file. Symlinked entries follow their target already.
        """
        entry = self.enabled_path(name)
        if self.link_mode != LINK_MODE_COPY or entry.is_symlink() or not entry.is_file():
            return False
        shutil.copy2(self.available_path(name), entry)
        logger.debug(f"Refreshed enabled copy '{entry}'")
        return True

    def unlink(self, name: str):
        entry = self.enabled_path(name)
        entry.unlink()
        logger.debug(f"Removed '{entry}'")

    def delete(self, name: str):
        target = self.available_path(name)
        target.unlink()
        logger.debug(f"Removed '{target}'")

import logging
from pathlib import Path
from typing import List, Optional

from phpenv_conf.confs_lock import DEFAULT_TIMEOUT, locked
from phpenv_conf.settings import Settings
from phpenv_conf.store import (
    FragmentListing,
    FragmentStore,
    fragment_name_from_path,
    partition_fragments,
)

logger = logging.getLogger(__name__)

COMMANDS = ("add", "rm", "enable", "disable", "ls", "version")
ALL_FRAGMENTS_CONTEXTS = ("rm", "remove", "disable", "dis")
DISABLED_FRAGMENTS_CONTEXTS = ("enable", "en")


class ConfigError(Exception):
    """Base exception for configuration manager errors."""
    pass


class ConfigNotFoundError(ConfigError):
    """Exception raised when a config fragment is not found."""
    pass


class InvalidFilePathError(ConfigError):
    """Exception raised when a file to add is missing or not a regular file."""
    pass


class ConfigPermissionError(ConfigError):
    """Exception raised for permission issues during file operations."""
    pass


class ConfigManager:
    """
    Manages the .ini fragments of a single phpenv PHP version.

    Fragments are stored in conf.d-available/ and enabled by linking them
    into conf.d/, the directory the PHP runtime scans for extra ini files.
    Mutating operations hold a lock on the version's etc/ directory.
    """

    def __init__(self, settings: Settings, store: Optional[FragmentStore] = None,
                 lock_timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            settings: Resolved root, version and link mode.
            store: Fragment store to operate on. Built from `settings` when omitted.
            lock_timeout: Seconds to wait for another process holding the version lock.

        Raises:
            SystemVersionError: If `settings` selects the 'system' version.
        """
        settings.ensure_managed()
        self.settings = settings
        self.etc_dir = settings.etc_dir
        self.lock_timeout = lock_timeout
        self.store = store or FragmentStore(
            settings.available_dir, settings.enabled_dir, settings.link_mode)

    # --- Private Helper Methods ---

    def _validate_name(self, name: Optional[str]) -> str:
        if not name or not name.strip():
            raise ConfigNotFoundError("Invalid config: no config name given.")
        if any(c in name for c in ('/', '\\', '\x00')) or name in ('.', '..'):
            raise ConfigNotFoundError(f"Invalid config: '{name}'")
        return name

    def _require_available(self, name: Optional[str]) -> str:
        name = self._validate_name(name)
        if not self.store.is_available(name):
            raise ConfigNotFoundError(f"Invalid config: '{name}'")
        return name

    def _ensure_directories(self):
        try:
            self.store.ensure_directories()
        except OSError as e:
            raise ConfigPermissionError(
                f"Failed to create config directories under '{self.etc_dir}': {e}") from e

    # --- Public API Methods (Locked) ---

    @locked
    def add_config(self, file_path: Optional[str]) -> str:
        """
        Copies an .ini file into the available store.

        An existing fragment of the same name is overwritten without notice.

        Returns:
            The fragment name derived from the file name.

        Raises:
            InvalidFilePathError: If `file_path` is not an existing regular file.
        """
        if not file_path or not Path(file_path).is_file():
            raise InvalidFilePathError(f"Invalid file path: '{file_path or ''}'")
        name = fragment_name_from_path(file_path)
        if not name:
            raise InvalidFilePathError(f"Invalid file path: '{file_path}'")

        self._ensure_directories()
        try:
            self.store.import_file(Path(file_path), name)
            if self.store.refresh_copy(name):
                logger.info(f"Updated enabled copy of '{name}'.")
        except OSError as e:
            raise ConfigPermissionError(f"Failed to add '{file_path}': {e}") from e
        return name

    @locked
    def remove_config(self, name: Optional[str]):
        """Deletes a fragment from the available store, disabling it first if needed."""
        self._ensure_directories()
        name = self._require_available(name)
        try:
            if self.store.is_enabled(name):
                self.store.unlink(name)
            self.store.delete(name)
        except OSError as e:
            raise ConfigPermissionError(f"Failed to remove '{name}': {e}") from e

    @locked
    def enable_config(self, name: Optional[str]) -> bool:
        """
        Links an available fragment into conf.d/.

        Returns:
            False if the fragment was already enabled and nothing changed.
        """
        self._ensure_directories()
        name = self._require_available(name)
        if self.store.is_enabled(name):
            return False
        try:
            self.store.link(name)
        except OSError as e:
            raise ConfigPermissionError(f"Failed to enable '{name}': {e}") from e
        return True

    @locked
    def disable_config(self, name: Optional[str]):
        """Removes the conf.d/ entry of a fragment, leaving the available copy."""
        self._ensure_directories()
        name = self._validate_name(name)
        if not self.store.is_enabled(name):
            raise ConfigNotFoundError(f"Invalid config: '{name}'")
        try:
            self.store.unlink(name)
        except OSError as e:
            raise ConfigPermissionError(f"Failed to disable '{name}': {e}") from e

    # --- Read-only Methods ---

    def get_listing(self) -> FragmentListing:
        self._ensure_directories()
        return partition_fragments(self.store.available_names(), self.store.enabled_names())

    def list_configs(self):
        """Prints the enabled fragments, then the ones that are only available."""
        listing = self.get_listing()
        print(f"Config enabled ({len(listing.enabled)} files):")
        for name in listing.enabled:
            print(f"  {name}")
        print(f"Config available ({len(listing.available)} files):")
        for name in listing.available:
            print(f"  {name}")

    def completion_candidates(self, context: Optional[str] = None) -> List[str]:
        """
        Words to offer for the next argument after `context`.

        Fragment names for commands taking one, the command names otherwise.
        """
        if context in ALL_FRAGMENTS_CONTEXTS:
            return sorted(self.store.available_names())
        if context in DISABLED_FRAGMENTS_CONTEXTS:
            return list(partition_fragments(
                self.store.available_names(), self.store.enabled_names()).available)
        return list(COMMANDS)

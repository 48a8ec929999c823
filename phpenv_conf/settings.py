import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from phpenv_conf.store import LINK_MODE_SYMLINK, LINK_MODES

logger = logging.getLogger(__name__)

SYSTEM_VERSION = "system"
DEFAULT_ROOT = "~/.phpenv"
SETTINGS_FILENAME = "phpenv-conf.yaml"

ROOT_ENV = "PHPENV_ROOT"
VERSION_ENV = "PHPENV_VERSION"
SETTINGS_ENV = "PHPENV_CONF_SETTINGS"

KNOWN_KEYS = {"link_mode"}


class SettingsError(Exception):
    "Settings could not be resolved"


class SettingsFormatError(SettingsError):
    "Settings file format error"


class SystemVersionError(SettingsError):
    "The selected PHP version is not managed by phpenv"


@dataclass(frozen=True)
class Settings:
    """Where the fragments of one PHP version live, and how they are enabled."""
    root: Path
    version: str
    link_mode: str = LINK_MODE_SYMLINK

    def __post_init__(self):
        if self.link_mode not in LINK_MODES:
            raise SettingsFormatError(
                f"Unknown link_mode '{self.link_mode}'. Expected one of: {', '.join(LINK_MODES)}.")

    @property
    def version_dir(self) -> Path:
        return self.root / "versions" / self.version

    @property
    def etc_dir(self) -> Path:
        return self.version_dir / "etc"

    @property
    def available_dir(self) -> Path:
        return self.etc_dir / "conf.d-available"

    @property
    def enabled_dir(self) -> Path:
        return self.etc_dir / "conf.d"

    @property
    def is_system(self) -> bool:
        return self.version == SYSTEM_VERSION

    def ensure_managed(self):
        """Raises SystemVersionError when the selected version is 'system'."""
        if self.is_system:
            raise SystemVersionError(
                "The 'system' PHP version is not managed by phpenv; select a phpenv version first.")


def _read_version_file(root: Path) -> Optional[str]:
    version_file = root / "version"
    if not version_file.is_file():
        return None
    try:
        for line in version_file.read_text(encoding="utf-8").splitlines():
            if line.strip():
                return line.strip()
    except OSError as e:
        raise SettingsError(f"Could not read version file '{version_file}': {e}") from e
    return None


def _load_settings_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise SettingsFormatError(f"YAML syntax error in '{path}': {e}") from e
    except OSError as e:
        raise SettingsError(f"Could not read settings file '{path}': {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SettingsFormatError(
            f"Settings file '{path}' must contain a mapping, got {type(data).__name__}.")

    for key in sorted(set(data) - KNOWN_KEYS, key=str):
        logger.warning(f"Ignoring unknown setting '{key}' in '{path}'.")
    return {k: v for k, v in data.items() if k in KNOWN_KEYS}


def load_settings(root: Optional[str] = None,
                  version: Optional[str] = None,
                  settings_file: Optional[str] = None,
                  environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Resolves the settings for the current invocation.

    Explicit arguments win over the environment, which wins over the host
    version manager's files. A version that cannot be determined falls back
    to 'system', just as phpenv itself does.

    Args:
        root: phpenv root directory override.
        version: PHP version name override.
        settings_file: Path to a YAML settings file. When omitted,
                       $PHPENV_CONF_SETTINGS, then <root>/phpenv-conf.yaml is used.
        environ: Environment mapping, defaults to os.environ.

    Raises:
        SettingsError: If the settings file or version file cannot be read.
        SettingsFormatError: If the settings file is malformed.
    """
    env = os.environ if environ is None else environ

    root_path = Path(root or env.get(ROOT_ENV) or DEFAULT_ROOT).expanduser()
    version_name = version or env.get(VERSION_ENV) or _read_version_file(root_path) or SYSTEM_VERSION

    options: Dict[str, Any] = {}
    explicit_file = settings_file or env.get(SETTINGS_ENV)
    if explicit_file:
        path = Path(explicit_file).expanduser()
        if not path.is_file():
            raise SettingsError(f"Settings file not found: {path}")
        options = _load_settings_file(path)
    elif (root_path / SETTINGS_FILENAME).is_file():
        options = _load_settings_file(root_path / SETTINGS_FILENAME)

    settings = Settings(root=root_path, version=version_name, **options)
    logger.debug(f"Resolved settings: {settings}")
    return settings

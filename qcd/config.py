"""
Configuration management for qcd.

Provides a hierarchical configuration system with sensible defaults.
Supports both global (~/.config/qcd/config.toml) and local (qcd.toml)
configurations. Environment variables use the QCD_RS_ prefix, so the
database location and the session id are usually set by the shell
integration (QCD_RS_DBPATH, QCD_RS_DBNAME, QCD_RS_SESSIONID).
"""
import os
import tomli
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from qcd.constants import DEFAULT_DBNAME, ENV_PREFIX, MIN_SESSIONID_LENGTH, STACK_EXPIRE_DAYS


@dataclass
class QcdConfig:
    """
    qcd configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (QCD_RS_*)
    3. Config file given on the command line
    4. Local config file (./qcd.toml)
    5. User config file (~/.config/qcd/config.toml)
    6. System defaults
    """

    # Database settings
    dbname: str = field(default=DEFAULT_DBNAME)
    dbpath: str = field(default="~")
    database_echo: bool = field(default=False)  # SQLAlchemy echo for debugging

    # Stack settings
    sessionid: str = field(default="")
    sessionid_min_length: int = field(default=MIN_SESSIONID_LENGTH)
    stack_expire_days: int = field(default=STACK_EXPIRE_DAYS)

    # Advanced
    log_level: str = field(default="WARNING")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "QcdConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "qcd" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_path = Path.cwd() / "qcd.toml"
        if local_path.exists():
            config._merge(cls._load_toml(local_path))

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def _apply_env_vars(self):
        """Apply environment variables with QCD_RS_ prefix."""
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX):
                config_key = key[len(ENV_PREFIX):].lower()
                if hasattr(self, config_key):
                    # Convert string values to appropriate types
                    current_value = getattr(self, config_key)
                    if isinstance(current_value, bool):
                        setattr(self, config_key, value.lower() in ("true", "1", "yes"))
                    elif isinstance(current_value, int):
                        setattr(self, config_key, int(value))
                    else:
                        setattr(self, config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in paths."""
        self.dbpath = os.path.expanduser(os.path.expandvars(self.dbpath))

    def get_database_path(self) -> Path:
        """Get the resolved database path."""
        path = Path(self.dbpath) / self.dbname
        if not path.is_absolute():
            path = Path.cwd() / path
        return path

    def has_session(self) -> bool:
        """Check if the session id is usable for stack operations."""
        return len(self.sessionid) >= self.sessionid_min_length


# Global configuration instance
_config: Optional[QcdConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> QcdConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = QcdConfig.load(config_file)
    return _config


def init_config(database: Optional[str] = None, config_file: Optional[Path] = None, **kwargs) -> QcdConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        database: Database file override (directory and name)
        config_file: Config file to load
        **kwargs: Other configuration overrides

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    if database:
        path = Path(os.path.expanduser(database))
        config.dbpath = str(path.parent)
        config.dbname = path.name

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config

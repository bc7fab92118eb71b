#!/usr/bin/env python3
"""
Configuration for the table reloader
Handles environment variables and source paths centrally

Priority (highest to lowest):
1. Explicit overrides passed to load_config (the CLI arguments)
2. Environment variables (UMA_*)
3. .env file in the working directory
4. ReloadConfig dataclass defaults
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass

# Fixed source layout of the game data
MASTER_SOURCE_PATH = "master/master.mdb"
META_SOURCE_PATH = "meta"
META_TABLE_PREFIX = "meta_"
TRANSLATION_TABLE = "text_data_english"

def _default_game_data_dir() -> Optional[Path]:
    """Game install data directory on Windows"""
    if os.name != 'nt':
        return None
    return Path.home() / 'AppData' / 'LocalLow' / 'Cygames' / 'umamusume'

@dataclass
class ReloadConfig:
    """Table reloader settings"""

    # Run environment, "Development" reads the local game install
    environment: str = "Production"

    # Paths
    work_dir: Path = None
    game_data_dir: Path = None

    # Translation source
    translation_repo: str = None
    translation_branch: str = None
    download_concurrency: int = None
    http_timeout: float = None

    # Runtime settings
    log_level: str = None
    verbose: bool = False

    def __post_init__(self):
        """Fill unset fields from the environment"""
        if self.work_dir is None:
            self.work_dir = Path(os.environ.get('UMA_WORK_DIR', os.getcwd()))
        else:
            self.work_dir = Path(self.work_dir)

        if self.game_data_dir is None:
            env_dir = os.environ.get('UMA_GAME_DATA_DIR')
            self.game_data_dir = Path(env_dir) if env_dir else _default_game_data_dir()
        else:
            self.game_data_dir = Path(self.game_data_dir)

        if self.translation_repo is None:
            self.translation_repo = os.environ.get('UMA_TRANSLATION_REPO', 'noccu/umamusu-translate')
        if self.translation_branch is None:
            self.translation_branch = os.environ.get('UMA_TRANSLATION_BRANCH', 'master')
        if self.download_concurrency is None:
            self.download_concurrency = int(os.environ.get('UMA_DOWNLOAD_CONCURRENCY', '200'))
        if self.http_timeout is None:
            self.http_timeout = float(os.environ.get('UMA_HTTP_TIMEOUT', '60'))
        if self.log_level is None:
            self.log_level = os.environ.get('UMA_LOG_LEVEL', 'INFO').upper()

        if not self.verbose:
            self.verbose = os.environ.get('UMA_VERBOSE', '').lower() == 'true'

        if self.download_concurrency < 1:
            raise ValueError("UMA_DOWNLOAD_CONCURRENCY must be at least 1")

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == 'development'

    @property
    def uses_local_game_data(self) -> bool:
        """Read sources straight from the game install instead of downloading"""
        return self.is_development and self.game_data_dir is not None

    @property
    def master_db_path(self) -> Path:
        if self.uses_local_game_data:
            return self.game_data_dir / 'master' / 'master.mdb'
        return self.work_dir / 'master.mdb'

    @property
    def meta_db_path(self) -> Path:
        if self.uses_local_game_data:
            return self.game_data_dir / 'meta'
        return self.work_dir / 'meta'

    def get_safe_dict(self) -> Dict[str, Any]:
        """Configuration as a plain dict"""
        return {
            'environment': self.environment,
            'work_dir': str(self.work_dir),
            'game_data_dir': str(self.game_data_dir) if self.game_data_dir else None,
            'uses_local_game_data': self.uses_local_game_data,
            'translation_repo': self.translation_repo,
            'translation_branch': self.translation_branch,
            'download_concurrency': self.download_concurrency,
            'http_timeout': self.http_timeout,
            'log_level': self.log_level,
            'verbose': self.verbose,
        }

class ConfigManager:
    """Singleton configuration manager"""

    _instance: Optional['ConfigManager'] = None
    _config: Optional[ReloadConfig] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load_config(self, env_file: Optional[Path] = None, **overrides) -> ReloadConfig:
        """Load the .env file into os.environ, then build the config"""
        env_file = Path(env_file) if env_file else Path(os.getcwd()) / '.env'
        if env_file.exists():
            self._load_env_file(env_file)

        self._config = ReloadConfig(**overrides)
        return self._config

    def _load_env_file(self, env_file: Path):
        """Load environment variables from .env file.

        Only sets values for keys not already in os.environ,
        ensuring exported env vars take precedence over .env file.
        """
        try:
            with open(env_file, 'r') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        key = key.strip()
                        if key not in os.environ:
                            os.environ[key] = value.strip().strip('"\'')
        except OSError as e:
            print(f"Warning: Could not load .env file: {e}")

    @property
    def config(self) -> ReloadConfig:
        """Get the current configuration"""
        if self._config is None:
            self.load_config()
        return self._config


def load_config(env_file: Optional[Path] = None, **overrides) -> ReloadConfig:
    """Build and install the global configuration"""
    return ConfigManager().load_config(env_file, **overrides)


def get_config() -> ReloadConfig:
    """Get the global configuration instance"""
    return ConfigManager().config


if __name__ == "__main__":
    config = get_config()
    print("Reloader Configuration:")
    print("-" * 40)
    for key, value in config.get_safe_dict().items():
        print(f"{key}: {value}")

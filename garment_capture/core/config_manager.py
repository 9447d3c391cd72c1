"""Reader for ``key = value`` configuration files."""

from __future__ import annotations

import asyncio
import hashlib
import re
from pathlib import Path
from typing import Dict, Iterable, Optional

import aiofiles

from .logging_utils import get_module_logger
from .paths import PACKAGE_ROOT, USER_CONFIG_OVERRIDES_DIR

logger = get_module_logger("ConfigManager")


class ConfigManager:
    """Parses config files and layers per-user override files on top.

    Overrides live under ``USER_CONFIG_OVERRIDES_DIR`` so a packaged
    ``config.txt`` never has to be writable.
    """

    def __init__(self, overrides_dir: Optional[Path] = None) -> None:
        self.overrides_dir = Path(overrides_dir) if overrides_dir else USER_CONFIG_OVERRIDES_DIR

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def parse_lines(lines: Iterable[str]) -> Dict[str, str]:
        config: Dict[str, str] = {}

        for raw_line in lines:
            line = raw_line.strip()
            if not line or line.startswith('#'):
                continue
            if '=' not in line:
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if '#' in value:
                value = value.split('#')[0].strip()

            if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                value = value[1:-1]

            config[key] = value

        return config

    def override_path_for(self, config_path: Path) -> Path:
        try:
            rel_path = config_path.resolve().relative_to(PACKAGE_ROOT)
        except ValueError:
            digest = hashlib.sha1(str(config_path).encode('utf-8')).hexdigest()[:10]
            safe_name = re.sub(r'[^a-zA-Z0-9._-]+', '_', config_path.stem or 'config')
            rel_path = Path('external') / f"{safe_name}_{digest}{config_path.suffix or '.txt'}"
        return self.overrides_dir / rel_path

    def _load_override_sync(self, config_path: Path) -> Dict[str, str]:
        override_path = self.override_path_for(config_path)
        if not override_path.exists():
            return {}

        try:
            with open(override_path, 'r', encoding='utf-8') as fh:
                return self.parse_lines(fh)
        except OSError as exc:
            logger.warning("Failed to read override config %s: %s", override_path, exc)
            return {}

    # ------------------------------------------------------------------
    # Reading

    def read_config(self, config_path: Path) -> Dict[str, str]:
        """Read ``config_path`` plus its override file. Missing files yield ``{}``."""
        config: Dict[str, str] = {}

        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config = self.parse_lines(f)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)
        else:
            logger.debug("Config file %s not found, using defaults", config_path)

        overrides = self._load_override_sync(config_path)
        if overrides:
            logger.debug("Applying %d override(s) to %s", len(overrides), config_path)
            config.update(overrides)

        return config

    async def read_config_async(self, config_path: Path) -> Dict[str, str]:
        """Async version of :meth:`read_config` for use inside the event loop."""
        config: Dict[str, str] = {}

        if await asyncio.to_thread(config_path.exists):
            try:
                async with aiofiles.open(config_path, 'r', encoding='utf-8') as f:
                    lines = await f.readlines()
                config = self.parse_lines(lines)
            except OSError as e:
                logger.error("Failed to read config %s: %s", config_path, e)
        else:
            logger.debug("Config file %s not found, using defaults", config_path)

        overrides = await asyncio.to_thread(self._load_override_sync, config_path)
        if overrides:
            config.update(overrides)

        return config


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


__all__ = ["ConfigManager", "get_config_manager"]

#!/usr/bin/env python3
"""
Configuration loader for Media Organizer
Loads configuration from config.yaml file.
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


DEFAULT_LANGUAGES = ["zh-CN"]


@dataclass
class ProxyConfig:
    """Proxy configuration"""
    host: str
    port: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional['ProxyConfig']:
        """Create ProxyConfig from dictionary"""
        if not data:
            return None
        host = data.get('host')
        port = data.get('port')
        if not host or not port:
            return None
        return cls(host=host, port=port)


@dataclass
class TMDBConfig:
    """TMDB API configuration"""
    api_key: str
    languages: List[str] = None
    rate_limit: int = 40

    def __post_init__(self):
        """Set default languages if not provided"""
        if self.languages is None:
            self.languages = list(DEFAULT_LANGUAGES)

    @property
    def language(self) -> str:
        """Get default language from first item in languages array"""
        return self.languages[0] if self.languages else "en-US"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TMDBConfig':
        """Create TMDBConfig from dictionary"""
        # Get API key from config or environment
        api_key = data.get('api_key', '')
        if not api_key:
            api_key = os.getenv('TMDB_API_KEY', '')

        languages = data.get('languages', list(DEFAULT_LANGUAGES))
        if not isinstance(languages, list) or not languages:
            languages = list(DEFAULT_LANGUAGES)

        rate_limit = data.get('rate_limit', 40)
        if isinstance(rate_limit, float):
            rate_limit = int(rate_limit)
        elif not isinstance(rate_limit, int) or rate_limit <= 0:
            rate_limit = 40  # Default fallback

        return cls(
            api_key=api_key,
            languages=languages,
            rate_limit=rate_limit
        )


@dataclass
class RenameConfig:
    """Rename rule configuration

    rule is a built-in rule name ("plex", "emby") or rule code; rule_file, when set,
    points to a file holding rule code and wins over rule.
    """
    rule: str = "plex"
    rule_file: Optional[str] = None
    recursive: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'RenameConfig':
        if not data:
            return cls()
        return cls(
            rule=data.get('rule') or "plex",
            rule_file=data.get('rule_file') or None,
            recursive=bool(data.get('recursive', True))
        )

    def load_rule(self) -> str:
        """Return the rule text (built-in name or code), reading rule_file if configured"""
        if self.rule_file:
            with open(self.rule_file, 'r', encoding='utf-8') as f:
                return f.read()
        return self.rule


@dataclass
class Config:
    """Complete application configuration"""
    tmdb: TMDBConfig
    proxy: Optional[ProxyConfig] = None
    rename: RenameConfig = field(default_factory=RenameConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create Config from dictionary"""
        tmdb_section = data.get('tmdb', {})
        if not tmdb_section:
            raise ValueError(
                "TMDB configuration section not found in config.yaml.\n"
                "Please add a 'tmdb' section with your API settings."
            )

        tmdb_config = TMDBConfig.from_dict(tmdb_section)

        if not tmdb_config.api_key:
            raise ValueError(
                "TMDB API key not found in config.yaml or TMDB_API_KEY environment variable.\n"
                "Please set tmdb.api_key in config.yaml or set TMDB_API_KEY environment variable."
            )

        # Load proxy configuration from root level
        proxy_data = data.get('proxy')
        proxy = ProxyConfig.from_dict(proxy_data) if proxy_data else None

        return cls(
            tmdb=tmdb_config,
            proxy=proxy,
            rename=RenameConfig.from_dict(data.get('rename'))
        )


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load complete configuration from YAML file

    Args:
        config_path: Path to config.yaml file. If None, looks for config.yaml
                     in the current directory or script directory.

    Returns:
        Config object with all loaded configurations (TMDB, proxy, rename)

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If required configuration is missing
    """
    if config_path is None:
        # Try current directory first
        config_file = Path.cwd() / 'config.yaml'

        # If not found, try script directory
        if not config_file.exists():
            config_file = Path(__file__).parent / 'config.yaml'
    else:
        config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_file}\n"
            f"Please create config.yaml with your API settings."
        )

    with open(config_file, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        raise ValueError("Configuration file is empty")

    return Config.from_dict(config_data)

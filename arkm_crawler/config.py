import os
import sys
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .errors import ConfigError

CHAINS = [
    'bitcoin',
    'ethereum',
    'solana',
    'tron',
    'dogecoin',
    'ton',
    'base',
    'arbitrum_one',
    'sonic',
    'optimism',
    'mantle',
    'avalanche',
    'bsc',
    'linea',
    'polygon',
    'blast',
    'manta',
    'flare'
]

DEFAULT_LIMIT = 500
MAX_LIMIT = 1000
DEFAULT_PAGES = 3
MAX_PAGES = 10

CONFIG_FILE = "config.txt"
ARGS_FILE = "args.txt"


def get_base_path():
    if getattr(sys, 'frozen', False):
        return os.path.dirname(sys.executable)
    return os.path.abspath(".")


def clamp_limit(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return DEFAULT_LIMIT
    if value == 0:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, value))


def clamp_pages(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return DEFAULT_PAGES
    if value == 0:
        return DEFAULT_PAGES
    return max(1, min(MAX_PAGES, value))


@dataclass
class Settings:
    api_key: Optional[str] = None
    proxy: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    pages: int = DEFAULT_PAGES
    chains: List[str] = field(default_factory=lambda: list(CHAINS))

    def override(self, **values):
        """Copy with every non-None value applied."""
        values = {k: v for k, v in values.items() if v is not None}
        updated = replace(self, **values)
        updated.limit = clamp_limit(updated.limit)
        updated.pages = clamp_pages(updated.pages)
        return updated


def parse_chains(value):
    chains = [c.strip() for c in value.split(",") if c.strip()]
    unknown = [c for c in chains if c not in CHAINS]
    if unknown:
        raise ConfigError(f"未知的链：{', '.join(unknown)}")
    return chains


def parse_config(lines):
    """``key=value`` lines of config.txt; bad numbers are ignored."""
    values = {}
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = [x.strip() for x in line.split("=", 1)]
        if key in ("num", "limit"):
            try:
                values["limit"] = int(value)
            except ValueError:
                pass
        elif key in ("offset", "pages"):
            try:
                values["pages"] = int(value)
            except ValueError:
                pass
        elif key == "api_key" and value:
            values["api_key"] = value
        elif key == "proxy" and value:
            values["proxy"] = value
        elif key == "chains" and value:
            values["chains"] = parse_chains(value)
    return values


def load_settings(config_path=None, environ=None):
    environ = os.environ if environ is None else environ
    if config_path is None:
        config_path = os.path.join(get_base_path(), CONFIG_FILE)

    values = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            values = parse_config(f)

    values["api_key"] = environ.get("ARKHAM_API_KEY") or values.get("api_key")
    values["proxy"] = environ.get("ARKHAM_PROXY") or values.get("proxy")
    return Settings().override(**values)


def parse_entity_line(line):
    """``Entity Name,entity_id`` -> (name, id)."""
    if ',' not in line:
        raise ConfigError(f"格式错误：{line}")
    name, entity_id = [x.strip() for x in line.split(',', 1)]
    if not name or not entity_id:
        raise ConfigError(f"格式错误：{line}")
    return name, entity_id


def read_entity_args(args_path):
    if not os.path.exists(args_path):
        raise ConfigError(f"缺少 {args_path} 文件，请在同目录下提供，格式为每行一个 Entity,entity")
    with open(args_path, "r", encoding="utf-8") as arg_file:
        return [line.strip() for line in arg_file if line.strip()]

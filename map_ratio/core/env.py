"""Environment and settings loading for map-ratio.

Settings are resolved from one merged view, first source wins:
  1. Existing OS environment variables.
  2. .env file at --env-file path (if explicitly provided).
  3. .env file found by searching cwd and its parents up to the .git boundary.

The .env entries are folded into that view only; os.environ is left untouched.

Recognised variables:
  MAP_RATIO_POLICY     path to a JSON classification policy
  MAP_RATIO_WORKERS    default thread count for classification (>= 1)
  MAP_RATIO_LOG_LEVEL  logging level name (see map_ratio.core.log; OS env only)
"""

import os
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from map_ratio.core.errors import MapRatioError

POLICY_ENV = 'MAP_RATIO_POLICY'
WORKERS_ENV = 'MAP_RATIO_WORKERS'


@dataclass
class Settings:
    policy_path: str | None = None
    workers: int = 1
    source: Path | None = None  # .env file the values were merged from


def _search_dirs(start: Path) -> Iterator[Path]:
    """Yield start and its parents, ending with the first one that holds .git."""
    for directory in (start, *start.parents):
        yield directory
        # .git is a dir in a normal clone, a file in a worktree
        if (directory / '.git').exists():
            return


def find_dotenv(start: Path) -> Path | None:
    """Nearest .env at or above start, without crossing a repository root."""
    for directory in _search_dirs(start.resolve()):
        candidate = directory / '.env'
        if candidate.is_file():
            return candidate
    return None


def parse_dotenv(path: Path) -> dict[str, str]:
    """Read KEY=value lines; quotes around values are stripped, comments skipped."""
    entries: dict[str, str] = {}
    for raw in path.read_text(encoding='utf-8').splitlines():
        line = raw.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        if line.startswith('export '):
            line = line[len('export ') :]
        key, _, value = line.partition('=')
        key = key.strip()
        if key:
            entries[key] = value.strip().strip('"').strip("'")
    return entries


def settings_from_env(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables (os.environ by default)."""
    env = os.environ if environ is None else environ

    raw_workers = env.get(WORKERS_ENV, '').strip()
    workers = 1
    if raw_workers:
        try:
            workers = int(raw_workers)
        except ValueError:
            raise MapRatioError(f'{WORKERS_ENV} must be an integer, got {raw_workers!r}') from None
        if workers < 1:
            raise MapRatioError(f'{WORKERS_ENV} must be >= 1, got {workers}')

    return Settings(policy_path=env.get(POLICY_ENV) or None, workers=workers)


def load_settings(env_file: str | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Resolve Settings from the environment plus a .env file.

    A missing explicit env_file is ignored, as is the absence of any .env.
    """
    source = Path(env_file) if env_file else find_dotenv(Path.cwd())
    if source is not None and not source.is_file():
        source = None

    merged = dict(os.environ if environ is None else environ)
    if source is not None:
        merged = {**parse_dotenv(source), **merged}

    settings = settings_from_env(merged)
    settings.source = source
    return settings

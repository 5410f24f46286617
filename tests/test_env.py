"""Tests for map_ratio.core.env: .env loading, walk-up logic, and settings."""

import os
from pathlib import Path

import pytest
from map_ratio.core.env import Settings, find_dotenv, load_settings, parse_dotenv, settings_from_env
from map_ratio.core.errors import MapRatioError


class TestParseDotenv:
    def test_simple_key_value(self, tmp_path: Path) -> None:
        f = tmp_path / '.env'
        f.write_text('MAP_RATIO_WORKERS=4\n')
        assert parse_dotenv(f) == {'MAP_RATIO_WORKERS': '4'}

    def test_quoted_values(self, tmp_path: Path) -> None:
        f = tmp_path / '.env'
        f.write_text('A="map area"\nB=\'single\'\n')
        assert parse_dotenv(f) == {'A': 'map area', 'B': 'single'}

    def test_comments_and_blank_lines_ignored(self, tmp_path: Path) -> None:
        f = tmp_path / '.env'
        f.write_text('# palette\n\nA=1\n\n')
        assert parse_dotenv(f) == {'A': '1'}

    def test_line_without_equals_ignored(self, tmp_path: Path) -> None:
        f = tmp_path / '.env'
        f.write_text('NOEQUALS\nA=1\n')
        assert parse_dotenv(f) == {'A': '1'}

    def test_export_prefix(self, tmp_path: Path) -> None:
        f = tmp_path / '.env'
        f.write_text('export MAP_RATIO_POLICY=palette.json\n')
        assert parse_dotenv(f) == {'MAP_RATIO_POLICY': 'palette.json'}


class TestFindDotenv:
    def test_finds_in_start_dir(self, tmp_path: Path) -> None:
        dotenv = tmp_path / '.env'
        dotenv.write_text('X=1\n')
        assert find_dotenv(tmp_path) == dotenv

    def test_finds_in_parent(self, tmp_path: Path) -> None:
        sub = tmp_path / 'maps'
        sub.mkdir()
        dotenv = tmp_path / '.env'
        dotenv.write_text('X=1\n')
        assert find_dotenv(sub) == dotenv

    def test_stops_at_git_dir(self, tmp_path: Path) -> None:
        repo = tmp_path / 'repo'
        (repo / '.git').mkdir(parents=True)
        (tmp_path / '.env').write_text('X=1\n')
        src = repo / 'src'
        src.mkdir()
        assert find_dotenv(src) is None

    def test_stops_at_git_file(self, tmp_path: Path) -> None:
        repo = tmp_path / 'repo'
        repo.mkdir()
        (repo / '.git').write_text('gitdir: ../elsewhere\n')
        (tmp_path / '.env').write_text('X=1\n')
        assert find_dotenv(repo) is None


class TestLoadSettings:
    def test_reads_dotenv_from_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / '.env').write_text('MAP_RATIO_POLICY=palette.json\nMAP_RATIO_WORKERS=2\n')
        monkeypatch.chdir(tmp_path)
        settings = load_settings()
        assert settings == Settings(policy_path='palette.json', workers=2, source=tmp_path / '.env')

    def test_os_environ_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('MAP_RATIO_WORKERS', '3')
        (tmp_path / '.env').write_text('MAP_RATIO_WORKERS=8\n')
        monkeypatch.chdir(tmp_path)
        assert load_settings().workers == 3

    def test_does_not_touch_os_environ(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / '.env').write_text('MAP_RATIO_POLICY=palette.json\n')
        monkeypatch.chdir(tmp_path)
        load_settings()
        assert 'MAP_RATIO_POLICY' not in os.environ

    def test_explicit_env_file(self, tmp_path: Path) -> None:
        custom = tmp_path / 'custom.env'
        custom.write_text('MAP_RATIO_POLICY=custom.json\n')
        settings = load_settings(env_file=str(custom), environ={})
        assert settings.policy_path == 'custom.json'
        assert settings.source == custom

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        settings = load_settings(env_file=str(tmp_path / 'nope.env'), environ={})
        assert settings == Settings()

    def test_none_at_git_boundary(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / '.git').mkdir()
        monkeypatch.chdir(tmp_path)
        assert load_settings(environ={}).source is None

    def test_explicit_environ_mapping(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / '.git').mkdir()
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv('MAP_RATIO_WORKERS', '5')
        assert load_settings(environ={'MAP_RATIO_WORKERS': '2'}).workers == 2

    def test_bad_workers_in_dotenv(self, tmp_path: Path) -> None:
        custom = tmp_path / 'custom.env'
        custom.write_text('MAP_RATIO_WORKERS=0\n')
        with pytest.raises(MapRatioError, match='>= 1'):
            load_settings(env_file=str(custom), environ={})



class TestSettingsFromEnv:
    def test_defaults(self) -> None:
        assert settings_from_env({}) == Settings(policy_path=None, workers=1)

    def test_values(self) -> None:
        env = {'MAP_RATIO_POLICY': 'palette.json', 'MAP_RATIO_WORKERS': '4'}
        assert settings_from_env(env) == Settings(policy_path='palette.json', workers=4)

    def test_empty_policy_is_none(self) -> None:
        assert settings_from_env({'MAP_RATIO_POLICY': ''}).policy_path is None

    def test_non_integer_workers(self) -> None:
        with pytest.raises(MapRatioError, match='integer'):
            settings_from_env({'MAP_RATIO_WORKERS': 'many'})

    def test_zero_workers(self) -> None:
        with pytest.raises(MapRatioError, match='>= 1'):
            settings_from_env({'MAP_RATIO_WORKERS': '0'})

    def test_reads_os_environ(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv('MAP_RATIO_WORKERS', '3')
        assert settings_from_env().workers == 3

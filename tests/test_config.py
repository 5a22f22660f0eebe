"""
Tests for markstore/config.py
"""
from pathlib import Path

import pytest
import tomli

from markstore.config import StoreConfig, get_config, init_config, set_option, user_config_path
from markstore.errors import ValidationError


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self):
        config = StoreConfig()

        assert config.database == "markstore.db"
        assert config.database_url is None
        assert config.connection_pool_size == 5
        assert config.max_overflow == 10
        assert config.connection_timeout == 30
        assert config.bcrypt_rounds == 10
        assert config.fulltext is True
        assert config.output_format == "table"
        assert config.log_level == "WARNING"

    def test_load_without_files(self):
        config = StoreConfig.load()

        assert config.database == "markstore.db"

    def test_database_url_from_path(self, tmp_path):
        config = StoreConfig(database=str(tmp_path / "x.db"))

        assert config.get_database_url() == f"sqlite:///{tmp_path / 'x.db'}"
        assert config.is_sqlite()

    def test_relative_path_resolved_against_cwd(self, clean_env):
        config = StoreConfig(database="rel.db")

        assert config.get_database_path() == Path.cwd() / "rel.db"

    def test_explicit_url_wins(self):
        config = StoreConfig(database="ignored.db", database_url="postgresql://u@localhost/marks")

        assert config.get_database_url() == "postgresql://u@localhost/marks"
        assert not config.is_sqlite()


class TestFiles:
    """Test loading TOML files."""

    def test_user_config(self, clean_env):
        user_dir = Path.home() / ".config" / "markstore"
        user_dir.mkdir(parents=True)
        (user_dir / "config.toml").write_text('database = "user.db"\nbcrypt_rounds = 12\n')

        config = StoreConfig.load()

        assert config.database == "user.db"
        assert config.bcrypt_rounds == 12

    def test_local_overrides_user(self, clean_env):
        user_dir = Path.home() / ".config" / "markstore"
        user_dir.mkdir(parents=True)
        (user_dir / "config.toml").write_text('database = "user.db"\nbcrypt_rounds = 12\n')
        (clean_env / "markstore.toml").write_text('database = "local.db"\n')

        config = StoreConfig.load()

        assert config.database == "local.db"
        assert config.bcrypt_rounds == 12

    def test_explicit_file(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text("fulltext = false\nconnection_pool_size = 2\n")

        config = StoreConfig.load(path)

        assert config.fulltext is False
        assert config.connection_pool_size == 2

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('no_such_option = 1\n')

        config = StoreConfig.load(path)

        assert not hasattr(config, "no_such_option")

    def test_home_expanded(self, tmp_path):
        path = tmp_path / "custom.toml"
        path.write_text('database = "~/marks/store.db"\n')

        config = StoreConfig.load(path)

        assert config.database == str(Path.home() / "marks" / "store.db")

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / "saved" / "config.toml"
        StoreConfig(database="saved.db", bcrypt_rounds=8).save(path)

        with open(path, "rb") as f:
            data = tomli.load(f)
        assert data["database"] == "saved.db"
        assert "database_url" not in data

        assert StoreConfig.load(path).bcrypt_rounds == 8


class TestEnvironment:
    """Test MARKSTORE_ environment variables."""

    def test_env_overrides_files(self, clean_env, monkeypatch):
        (clean_env / "markstore.toml").write_text('database = "local.db"\n')
        monkeypatch.setenv("MARKSTORE_DATABASE", "env.db")

        assert StoreConfig.load().database == "env.db"

    def test_env_types(self, monkeypatch):
        monkeypatch.setenv("MARKSTORE_BCRYPT_ROUNDS", "4")
        monkeypatch.setenv("MARKSTORE_FULLTEXT", "no")
        monkeypatch.setenv("MARKSTORE_DATABASE_ECHO", "true")
        monkeypatch.setenv("MARKSTORE_DATABASE_URL", "sqlite://")

        config = StoreConfig.load()

        assert config.bcrypt_rounds == 4
        assert config.fulltext is False
        assert config.database_echo is True
        assert config.database_url == "sqlite://"


class TestGlobalConfig:
    """Test get_config() and init_config()."""

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reload(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("MARKSTORE_BCRYPT_ROUNDS", "6")

        second = get_config(reload=True)

        assert second is not first
        assert second.bcrypt_rounds == 6

    def test_init_config_overrides(self):
        config = init_config(database="cli.db", output_format="json", log_level=None)

        assert config.database == "cli.db"
        assert config.output_format == "json"
        assert config.log_level == "WARNING"
        assert get_config() is config


class TestValidation:
    """Test StoreConfig.validate()."""

    @pytest.mark.parametrize("overrides,field", [
        ({"bcrypt_rounds": 3}, "bcrypt_rounds"),
        ({"bcrypt_rounds": 32}, "bcrypt_rounds"),
        ({"connection_pool_size": 0}, "connection_pool_size"),
        ({"max_overflow": -1}, "connection_timeout"),
        ({"output_format": "csv"}, "output_format"),
    ])
    def test_rejects(self, overrides, field):
        config = StoreConfig(**overrides)

        with pytest.raises(ValidationError) as exc_info:
            config.validate()

        assert exc_info.value.field == field

    def test_load_validates(self, monkeypatch):
        monkeypatch.setenv("MARKSTORE_CONNECTION_POOL_SIZE", "0")

        with pytest.raises(ValidationError):
            StoreConfig.load()

    def test_defaults_are_valid(self):
        StoreConfig().validate()


class TestSetOption:
    """Test set_option()."""

    def test_creates_user_file(self):
        path = set_option("bcrypt_rounds", "12")

        assert path == user_config_path()
        assert StoreConfig.load().bcrypt_rounds == 12

    def test_keeps_other_settings(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('database = "mine.db"\n')

        set_option("fulltext", "off", path)

        with open(path, "rb") as f:
            data = tomli.load(f)
        assert data == {"database": "mine.db", "fulltext": False}

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ValidationError):
            set_option("colour", "blue", tmp_path / "config.toml")

        assert not (tmp_path / "config.toml").exists()

    @pytest.mark.parametrize("value", ["many", "2"])
    def test_bad_value_leaves_file_alone(self, tmp_path, value):
        path = tmp_path / "config.toml"
        path.write_text("bcrypt_rounds = 8\n")

        with pytest.raises(ValidationError):
            set_option("bcrypt_rounds", value, path)

        assert path.read_text() == "bcrypt_rounds = 8\n"

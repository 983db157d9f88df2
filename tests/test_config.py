# =============================================================================
# Configuration Tests
# =============================================================================

import tomllib

import pytest

from readmail.config import (
    Config,
    ConfigError,
    ENV_PASS,
    ENV_SERVER,
    ENV_USER,
    get_xdg_config_home,
    get_xdg_state_home,
    parse_server_address,
)


class TestParseServerAddress:
    def test_host_only(self):
        assert parse_server_address("imap.example.com") == ("imap.example.com", 993)

    def test_host_and_port(self):
        assert parse_server_address("imap.example.com:143") == ("imap.example.com", 143)

    def test_custom_default_port(self):
        assert parse_server_address("localhost", default_port=1143) == ("localhost", 1143)

    def test_surrounding_whitespace(self):
        assert parse_server_address("  mail.local:993 ") == ("mail.local", 993)

    @pytest.mark.parametrize("value", ["imap.example.com:abc", "imap.example.com:0",
                                       "imap.example.com:70000", ":993"])
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            parse_server_address(value)


class TestXDGPaths:
    def test_config_home_respects_env(self, monkeypatch, temp_dir):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir))
        assert get_xdg_config_home() == temp_dir / "readmail"
        assert Config.config_file_path() == temp_dir / "readmail" / "config.toml"

    def test_state_home_respects_env(self, monkeypatch, temp_dir):
        monkeypatch.setenv("XDG_STATE_HOME", str(temp_dir))
        assert get_xdg_state_home() == temp_dir / "readmail"
        assert Config.log_file_path() == temp_dir / "readmail" / "readmail.log"


class TestLoad:
    def test_missing_file_uses_defaults(self, temp_dir):
        config = Config.load(temp_dir / "absent.toml", env={})
        assert config.account.user == ""
        assert config.account.mailbox == "INBOX"
        assert config.imap.timeout == 30.0
        assert config.mime.max_depth == 20
        assert config.ui.recent_window == 10
        assert config.password is None

    def test_environment_only(self, temp_dir):
        env = {
            ENV_USER: "me@example.com",
            ENV_PASS: "hunter2",
            ENV_SERVER: "imap.example.com:143",
        }
        config = Config.load(temp_dir / "absent.toml", env=env)
        config.validate()
        assert config.account.user == "me@example.com"
        assert config.password == "hunter2"
        assert config.account.imap_host == "imap.example.com"
        assert config.account.imap_port == 143

    def test_file_values(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text(
            '[account]\n'
            'user = "file@example.com"\n'
            'imap_host = "mail.example.org"\n'
            'imap_port = 143\n'
            'imap_security = "STARTTLS"\n'
            'mailbox = "Archive"\n'
            '[imap]\n'
            'timeout = 5\n'
            '[mime]\n'
            'max_depth = 8\n'
            '[ui]\n'
            'recent_window = 25\n'
        )
        config = Config.load(path, env={})
        assert config.account.user == "file@example.com"
        assert config.account.imap_security == "starttls"
        assert config.account.mailbox == "Archive"
        assert config.imap.timeout == 5.0
        assert config.mime.max_depth == 8
        assert config.ui.recent_window == 25

    def test_environment_overrides_file(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text('[account]\nuser = "file@example.com"\nimap_host = "file.host"\n')
        config = Config.load(path, env={ENV_USER: "env@example.com", ENV_SERVER: "env.host"})
        assert config.account.user == "env@example.com"
        assert config.account.imap_host == "env.host"
        assert config.account.imap_port == 993

    def test_empty_env_values_are_ignored(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text('[account]\nuser = "file@example.com"\n')
        config = Config.load(path, env={ENV_USER: ""})
        assert config.account.user == "file@example.com"

    def test_invalid_toml(self, temp_dir):
        path = temp_dir / "config.toml"
        path.write_text("[account\nuser = ")
        with pytest.raises(ConfigError):
            Config.load(path, env={})

    @pytest.mark.parametrize("body", [
        '[account]\nimap_security = "plain"\n',
        '[account]\nimap_port = 0\n',
        '[account]\nimap_port = "many"\n',
        '[imap]\ntimeout = 0\n',
        '[mime]\nmax_depth = -1\n',
        '[mime]\nmax_depth = 1000\n',
        '[ui]\nrecent_window = 0\n',
        'account = "not a table"\n',
    ])
    def test_invalid_values(self, temp_dir, body):
        path = temp_dir / "config.toml"
        path.write_text(body)
        with pytest.raises(ConfigError):
            Config.load(path, env={})

    def test_bad_server_in_env(self, temp_dir):
        with pytest.raises(ConfigError):
            Config.load(temp_dir / "absent.toml", env={ENV_SERVER: "host:nope"})


class TestValidate:
    def test_missing_user(self):
        config = Config()
        config.account.imap_host = "imap.example.com"
        with pytest.raises(ConfigError, match=ENV_USER):
            config.validate()

    def test_missing_server(self):
        config = Config()
        config.account.user = "me@example.com"
        with pytest.raises(ConfigError, match=ENV_SERVER):
            config.validate()

    def test_complete(self, sample_config):
        sample_config.validate()


class TestSave:
    def test_round_trip(self, temp_dir, sample_config):
        sample_config.ui.recent_window = 15
        path = sample_config.save(temp_dir / "nested" / "config.toml")

        loaded = Config.load(path, env={})
        assert loaded.account.user == "test@example.com"
        assert loaded.account.imap_host == "imap.example.com"
        assert loaded.ui.recent_window == 15

    def test_password_is_never_written(self, temp_dir, sample_config):
        path = sample_config.save(temp_dir / "config.toml")
        text = path.read_text()
        assert "secret" not in text
        assert "password" not in tomllib.loads(text)["account"]

    def test_password_not_in_repr(self, sample_config):
        assert "secret" not in repr(sample_config)

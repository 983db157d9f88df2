# =============================================================================
# Application Tests
# =============================================================================
# Command-line handling, plus the whole app driven through Textual's test
# pilot against an in-memory session.
# =============================================================================

import asyncio

import pytest

from readmail import __version__
from readmail.app import ReadMailApp, main, parse_args
from readmail.config import ENV_PASS, ENV_SERVER, ENV_USER
from readmail.ui.screens.main import MainScreen
from readmail.ui.widgets import MessageList, MessagePreview

from fakes import connection_refused


async def wait_until(condition, timeout: float = 5.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("Timed out waiting for the app")
        await asyncio.sleep(0.02)


@pytest.fixture
def clean_env(monkeypatch, temp_dir):
    """No GOMAIL_* variables and XDG directories inside a temp dir."""
    for name in (ENV_USER, ENV_PASS, ENV_SERVER):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(temp_dir / "state"))
    return temp_dir


class TestCommandLine:
    def test_defaults(self):
        args = parse_args([])
        assert not args.paths
        assert not args.debug
        assert args.config is None

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])
        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_unknown_flag_is_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--nope"])
        assert exc_info.value.code == 2

    def test_paths(self, clean_env, capsys):
        assert main(["--paths"]) == 0
        out = capsys.readouterr().out
        assert str(clean_env / "config" / "readmail") in out
        assert "readmail.log" in out

    def test_missing_configuration_fails(self, clean_env, capsys):
        assert main([]) == 1
        assert ENV_USER in capsys.readouterr().err

    def test_invalid_config_file_fails(self, clean_env, capsys):
        path = clean_env / "broken.toml"
        path.write_text("[account\n")
        assert main(["--config", str(path)]) == 1
        assert "Invalid config file" in capsys.readouterr().err

    def test_write_config(self, clean_env, monkeypatch, capsys):
        monkeypatch.setenv(ENV_USER, "me@example.com")
        monkeypatch.setenv(ENV_PASS, "hunter2")
        monkeypatch.setenv(ENV_SERVER, "imap.example.com:143")
        path = clean_env / "out.toml"

        assert main(["--config", str(path), "--write-config"]) == 0
        assert f"Wrote {path}" in capsys.readouterr().out
        text = path.read_text()
        assert "me@example.com" in text
        assert "hunter2" not in text


class TestReadMailApp:
    def test_read_message_and_exit(self, sample_config, inbox):
        async def scenario():
            app = ReadMailApp(sample_config, client=inbox)
            async with app.run_test() as pilot:
                await wait_until(
                    lambda: isinstance(app.screen, MainScreen)
                    and app.screen.selection_loop is not None
                )
                screen = app.screen
                message_list = screen.query_one("#message-list", MessageList)
                preview = screen.query_one("#message-preview", MessagePreview)
                await wait_until(lambda: bool(message_list.rows))

                await pilot.press("down", "enter")
                await wait_until(lambda: preview.text is not None)
                rows = message_list.rows
                text = preview.text
                subject = preview.subject

                await pilot.press("escape")
                await wait_until(lambda: screen.surface.closed)
            return app, rows, text, subject

        app, rows, text, subject = asyncio.run(scenario())
        assert rows == ["  A", "> B", "  C"]
        assert text == "hello world"
        assert subject == "B"
        assert inbox.fetch_raw_calls == [2]
        assert app.return_code == 0

    def test_connection_failure_exits_with_error(self, sample_config, inbox):
        inbox.connect_error = connection_refused()

        async def scenario():
            app = ReadMailApp(sample_config, client=inbox)
            async with app.run_test():
                await wait_until(lambda: app.return_code is not None)
            return app

        app = asyncio.run(scenario())
        assert app.return_code == 1
        assert inbox.fetch_raw_calls == []

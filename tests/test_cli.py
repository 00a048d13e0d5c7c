from click.testing import CliRunner

from chatbot_platform import cli
from chatbot_platform.app import ChatbotPlatform
from chatbot_platform.services.persistent_store import PROJECTS_KEY, PersistentStore

from .conftest import FakeCompletionAPI


def _shell(monkeypatch, config, api, lines):
    def make_platform(config=None):
        return ChatbotPlatform(config=config, transport=api.transport)

    monkeypatch.setattr(cli, "ChatbotPlatform", make_platform)
    monkeypatch.setattr(cli, "Settings", lambda **overrides: config)
    monkeypatch.setattr(cli, "init_logging", lambda: None)
    runner = CliRunner()
    return runner.invoke(cli.main, ["shell"], input="\n".join(lines) + "\n")


def test_revealed_frames_print_only_new_text(capsys):
    printer = cli.RevealPrinter()
    for frame in ["Hello", "Hello big", "Hello big world"]:
        printer(frame)
    assert capsys.readouterr().out == "Hello big world"


def test_shell_register_create_and_chat(monkeypatch, config):
    api = FakeCompletionAPI(reply="hi there")
    result = _shell(monkeypatch, config, api, [
        "/register", "Ann", "ann@x.com", "secret1",
        "/new", "Bot", "You are terse.",
        "/projects",
        "/use 1",
        "hi",
        "/quit",
    ])

    assert result.exit_code == 0, result.output
    assert "Welcome, Ann" in result.output
    assert "Created project Bot" in result.output
    assert "Now chatting with Bot" in result.output
    assert "Assistant: hi there" in result.output

    store = PersistentStore(config=config)
    try:
        assert [p["name"] for p in store.get(PROJECTS_KEY)] == ["Bot"]
    finally:
        store.close()


def test_shell_reports_errors(monkeypatch, config):
    api = FakeCompletionAPI()
    result = _shell(monkeypatch, config, api, [
        "hello?",
        "/login", "ann@x.com", "secret1",
        "/use 3",
        "/bogus",
        "/quit",
    ])

    assert result.exit_code == 0, result.output
    assert "Please /login or /register first." in result.output
    assert "Invalid email or password" in result.output
    assert "No project number 3" in result.output
    assert "Unknown command /bogus" in result.output
    assert api.requests == []


def test_init_db(monkeypatch, config):
    monkeypatch.setattr(cli, "Settings", lambda **overrides: config)
    result = CliRunner().invoke(cli.main, ["init-db"])
    assert result.exit_code == 0
    assert config.DATABASE_URL in result.output

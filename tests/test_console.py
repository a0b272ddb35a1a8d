import logging

import pytest

from hub_simulator import HubClient, SimulatorConfig
from hub_simulator.config import get_saved_nickname, save_nickname
from hub_simulator.logging_manager import LogManager
from hub_simulator.main import ChatConsole
from hub_simulator.slash_command_handler import SlashCommandHandler

ROUND_TRIP = 0.81


@pytest.fixture
def lines():
    return []


@pytest.fixture
def commands(connected_hub, lines):
    return SlashCommandHandler(connected_hub, lambda: "Bob", lines.append)


def test_plain_text_is_not_a_command(commands):
    assert commands.handle_command("hello") is False


def test_help(commands, lines):
    assert commands.handle_command("/help") is True
    assert "/simjoin" in lines[0]


def test_quit(commands):
    commands.handle_command("/QUIT")
    assert commands.quit_requested is True


def test_unknown_command(commands, lines):
    commands.handle_command("/dance")
    assert "Unknown command /dance" in lines[0]


def test_simulation_commands(commands, connected_hub, recorder):
    recorder.attach(connected_hub, "UserJoined", "UserLeft", "ReceiveMessage")

    commands.handle_command("/simjoin Carol")
    commands.handle_command("/simleave Carol")
    commands.handle_command("/simmsg Dave hello there")

    assert recorder.calls[0] == ("UserJoined", ("Carol",))
    assert recorder.calls[1] == ("UserLeft", ("Carol",))
    assert recorder.calls[2][1][:2] == ("Dave", "hello there")


def test_simulation_commands_need_arguments(commands, lines):
    commands.handle_command("/simjoin")
    commands.handle_command("/simmsg Dave")
    assert "Usage: /simjoin <name>" in lines[0]
    assert "Usage: /simmsg <name> <text>" in lines[1]


def test_disconnect_then_command_reports_error(commands, connected_hub, lines):
    commands.handle_command("/disconnect")
    assert not connected_hub.is_connected()

    commands.handle_command("/users")
    assert "not connected" in lines[-1]

    commands.handle_command("/reconnect")
    assert connected_hub.is_connected()


def test_users_and_leave(commands, connected_hub, scheduler, recorder):
    connected_hub.join_chat("Bob")
    scheduler.advance(ROUND_TRIP)
    recorder.attach(connected_hub, "ReceiveUserList", "UserLeft")

    commands.handle_command("/users")
    commands.handle_command("/leave")
    scheduler.advance(ROUND_TRIP)

    assert recorder.of("ReceiveUserList") == [(["Bob"],)]
    assert recorder.of("UserLeft") == [("Bob",)]


def test_console_session():
    config = SimulatorConfig(connect_delay_s=0.0, invoke_delay_s=0.0, broadcast_delay_s=0.0)
    inputs = iter(["Bob", "hello", "/quit"])
    output = []

    with HubClient(config) as hub:
        console = ChatConsole(hub, input_func=lambda prompt: next(inputs), output=output.append)
        assert console.run() == 0
        assert [m.content for m in hub.history()] == ["hello"]

    assert output[0] == "Connecting..."
    assert "Connected. Type /help for commands." in output


def test_console_rejects_blank_nickname():
    inputs = iter(["   "])
    output = []

    with HubClient(SimulatorConfig(connect_delay_s=0.0)) as hub:
        console = ChatConsole(hub, input_func=lambda prompt: next(inputs), output=output.append)
        assert console.run() == 1

    assert any("username must not be empty" in line for line in output)


def test_console_prints_events(connected_hub, scheduler):
    output = []
    console = ChatConsole(connected_hub, input_func=lambda prompt: "", output=output.append)
    console.username = "Bob"

    console.handle_line("hi all")
    scheduler.advance(ROUND_TRIP)
    connected_hub.simulate_user_join("Carol")

    assert output[0].endswith("<Bob (you)> hi all")
    assert output[1].endswith("* Carol joined")


def test_console_reports_rejected_text(connected_hub, scheduler):
    output = []
    console = ChatConsole(connected_hub, input_func=lambda prompt: "", output=output.append)
    console.username = "Bob"

    console.handle_line("ring \x07 bell")
    console.handle_line("broken \ud800")
    scheduler.advance(ROUND_TRIP)

    assert output[0] == "ERROR: message content contains control characters"
    assert output[1].startswith("ERROR: arguments for 'SendMessage' cannot be encoded")
    assert connected_hub.history() == ()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    monkeypatch.setenv("HUB_SIM_CONFIG", str(path))
    return path


def test_console_remembers_nickname(config_file):
    config = SimulatorConfig(connect_delay_s=0.0, invoke_delay_s=0.0, broadcast_delay_s=0.0)
    prompts = []

    def run_session(answers):
        inputs = iter(answers)

        def read(prompt):
            prompts.append(prompt)
            return next(inputs)

        with HubClient(config) as hub:
            console = ChatConsole(
                hub, input_func=read, output=lambda line: None, remember_nickname=True
            )
            assert console.run() == 0
            return console.username

    assert run_session(["Bob", "/quit"]) == "Bob"
    assert get_saved_nickname() == "Bob"

    assert run_session(["", "/quit"]) == "Bob"
    assert prompts[0] == "Nickname: "
    assert prompts[2] == "Nickname [Bob]: "


def test_saved_nickname_is_not_a_config_warning(config_file, caplog):
    save_nickname("Alice")

    assert SimulatorConfig.from_dict({"nickname": "Alice"}) == SimulatorConfig()
    assert "Ignoring unknown config keys" not in caplog.text


@pytest.fixture
def log_manager(tmp_path):
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    manager = LogManager(app_dir=tmp_path)
    manager.setup_logging(level="INFO", log_to_file=True, log_to_console=False)
    yield manager

    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def log_commands(connected_hub, lines, log_manager):
    return SlashCommandHandler(
        connected_hub, lambda: "Bob", lines.append, log_manager=log_manager
    )


def test_loglevel_command(log_commands, log_manager, lines):
    log_commands.handle_command("/loglevel")
    log_commands.handle_command("/loglevel debug")
    log_commands.handle_command("/loglevel loud")

    assert lines[0] == "Log level: INFO"
    assert lines[1] == "Log level set to DEBUG"
    assert log_manager.get_log_level_name() == "DEBUG"
    assert "Usage: /loglevel [DEBUG|INFO|WARNING|ERROR|CRITICAL]" in lines[2]


def test_log_command_shows_recent_lines(log_commands, lines):
    for i in range(3):
        logging.getLogger("hub_simulator.test").warning("entry %d", i)
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_commands.handle_command("/log 2")
    log_commands.handle_command("/log zero")

    assert lines[0].endswith("entry 1")
    assert lines[1].endswith("entry 2")
    assert "Usage: /log [n]" in lines[2]


def test_log_command_without_log_file(connected_hub, lines, tmp_path):
    commands = SlashCommandHandler(
        connected_hub, lambda: "Bob", lines.append, log_manager=LogManager(app_dir=tmp_path)
    )
    commands.handle_command("/log")
    assert lines[0].startswith("No log entries in ")


def test_log_commands_without_log_manager(commands, lines):
    commands.handle_command("/loglevel")
    assert "Logging is not managed by this console." in lines[0]

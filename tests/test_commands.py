import json

import pytest
from typer.testing import CliRunner

from conftest import StubClient
from mnotify.cli import app
from mnotify.commands.sync import format_event, stream_events
from mnotify.errors import MatrixError

runner = CliRunner()

ROOM = "!r:example.org"


def message(sender, body, event_id="$e"):
    return {"type": "m.room.message", "sender": sender, "event_id": event_id,
            "content": {"msgtype": "m.text", "body": body}}


# ========== room ==========

def test_room_list(stub_client):
    stub_client.responses["joined_rooms"] = ["!one:example.org", "!two:example.org"]

    result = runner.invoke(app, ["room", "--list"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["!one:example.org", "!two:example.org"]


def test_room_list_with_members_as_json(stub_client):
    stub_client.responses["joined_rooms"] = [ROOM]
    stub_client.responses["joined_members"] = {"@b:example.org": {}, "@a:example.org": {}}

    result = runner.invoke(app, ["--json", "room", "--list", "--members"])

    assert result.exit_code == 0
    assert json.loads(result.output) == [
        {"room_id": ROOM, "members": ["@a:example.org", "@b:example.org"]}
    ]


def test_room_create_with_invites(stub_client):
    stub_client.responses["create_room"] = "!new:example.org"

    result = runner.invoke(app, ["room", "--create", "--profile", "private", "--invites", "@b:x.org, @c:x.org"])

    assert result.exit_code == 0
    assert result.output.strip() == "!new:example.org"
    assert stub_client.calls[-1] == (
        "create_room", (), {"profile": "private", "direct": False, "invites": ["@b:x.org", "@c:x.org"]}
    )


def test_room_create_rejects_unknown_profile(stub_client):
    result = runner.invoke(app, ["room", "--create", "--profile", "secret"])

    assert result.exit_code == 1
    assert "unknown profile" in result.output


def test_room_invite_needs_room_and_user(stub_client):
    stub_client.responses["invite"] = None

    missing = runner.invoke(app, ["-U", "@b:example.org", "room", "--invite"])
    assert missing.exit_code == 1
    assert "--room" in missing.output

    result = runner.invoke(app, ["-U", "@b:example.org", "-R", ROOM, "room", "--invite"])
    assert result.exit_code == 0
    assert stub_client.calls[-1] == ("invite", (ROOM, "@b:example.org"), {})


def test_room_messages_are_printed_in_order(stub_client):
    stub_client.responses["messages"] = [message("@a:example.org", "first"), message("@b:example.org", "second")]

    result = runner.invoke(app, ["-R", ROOM, "room", "--messages", "-n", "2"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["@a:example.org: first", "@b:example.org: second"]
    assert stub_client.calls[-1] == ("messages", (ROOM,), {"limit": 2})


@pytest.mark.parametrize("argv", [["room"], ["room", "--leave", "--join"]])
def test_room_needs_exactly_one_action(stub_client, argv):
    result = runner.invoke(app, ["-R", ROOM] + argv)

    assert result.exit_code == 1
    assert "Error" in result.output
    assert stub_client.calls == []


# ========== send ==========

def test_send_message_flag(stub_client):
    stub_client.responses["send_message"] = "$sent"

    result = runner.invoke(app, ["-R", ROOM, "send", "-m", "hello"])

    assert result.exit_code == 0
    assert result.output.strip() == "$sent"
    assert stub_client.calls[-1] == ("send_message", (ROOM, "hello"), {"msgtype": "m.text"})


def test_send_reads_stdin_as_notice(stub_client):
    stub_client.responses["send_message"] = "$sent"

    result = runner.invoke(app, ["-R", ROOM, "send", "--notice"], input="build passed\n")

    assert result.exit_code == 0
    assert stub_client.calls[-1] == ("send_message", (ROOM, "build passed\n"), {"msgtype": "m.notice"})


def test_send_refuses_empty_body(stub_client):
    result = runner.invoke(app, ["-R", ROOM, "send"], input="   \n")

    assert result.exit_code == 1
    assert "empty message" in result.output


def test_send_without_room_fails(stub_client):
    result = runner.invoke(app, ["send", "-m", "hello"])

    assert result.exit_code == 1
    assert "--room" in result.output


# ========== sync ==========

def _scripted_sync(batches):
    remaining = list(batches)

    def sync(since=None, timeout_ms=30000, set_presence="online"):
        item = remaining.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return sync


def test_stream_skips_initial_batch():
    client = StubClient(sync=_scripted_sync([
        {"next_batch": "s1", "rooms": {"join": {ROOM: {"timeline": {"events": [message("@old:x", "old")]}}}}},
        {"next_batch": "s2", "rooms": {"join": {ROOM: {"timeline": {"events": [message("@new:x", "new")]}}}}},
    ]))

    events = stream_events(client, timeout_ms=1000, presence=True)
    room_id, event = next(events)

    assert room_id == ROOM
    assert event["content"]["body"] == "new"
    assert client.calls[0] == ("sync", (), {"timeout_ms": 0, "set_presence": "online"})
    assert client.calls[1] == ("sync", (), {"since": "s1", "timeout_ms": 1000, "set_presence": "online"})


def test_sync_prints_events_until_failure(stub_client):
    stub_client.responses["sync"] = _scripted_sync([
        {"next_batch": "s1"},
        {"next_batch": "s2", "rooms": {"join": {ROOM: {"timeline": {"events": [
            message("@a:example.org", "hi"),
            {"type": "m.reaction", "sender": "@b:example.org", "content": {}},
        ]}}}}},
        MatrixError("M_UNKNOWN_TOKEN: gone", status=401),
    ])

    result = runner.invoke(app, ["sync", "-t", "10"])

    assert result.exit_code == 1
    lines = result.output.splitlines()
    assert lines[0] == f"{ROOM} @a:example.org: hi"
    assert lines[1] == f"{ROOM} @b:example.org: <m.reaction>"
    assert "M_UNKNOWN_TOKEN" in result.output
    assert stub_client.calls[0][2]["set_presence"] == "offline"


def test_format_event_for_non_message():
    assert format_event(ROOM, {"type": "m.room.member", "sender": "@a:x"}) == f"{ROOM} @a:x: <m.room.member>"


# ========== synapse ==========

def test_synapse_version(stub_client):
    stub_client.responses["admin_server_version"] = {"server_version": "1.98.0"}

    result = runner.invoke(app, ["synapse", "version"])

    assert result.exit_code == 0
    assert result.output.strip() == "Server Version: 1.98.0"


def test_synapse_room_members(stub_client):
    stub_client.responses["admin_room_members"] = ["@a:example.org", "@b:example.org"]

    result = runner.invoke(app, ["-R", ROOM, "synapse", "room", "--members"])

    assert result.exit_code == 0
    assert result.output.splitlines() == ["@a:example.org", "@b:example.org"]


def test_synapse_user_defaults_to_session_user(stub_client):
    stub_client.responses["admin_user"] = {"name": "@a:example.org", "admin": True}

    result = runner.invoke(app, ["--json", "synapse", "user", "--show"])

    assert result.exit_code == 0
    assert json.loads(result.output)["admin"] is True
    assert stub_client.calls[-1] == ("admin_user", ("@a:example.org",), {})


def test_synapse_user_requires_single_action(stub_client):
    result = runner.invoke(app, ["synapse", "user", "--show", "--whois"])

    assert result.exit_code == 1
    assert "only one action" in result.output


def test_synapse_forbidden_is_reported(stub_client):
    stub_client.responses["admin_rooms"] = MatrixError("M_FORBIDDEN: You are not a server admin", status=403)

    result = runner.invoke(app, ["synapse", "room", "--list"])

    assert result.exit_code == 1
    assert "M_FORBIDDEN" in result.output


# ========== user / logout ==========

def test_user_profile(stub_client):
    stub_client.responses["profile"] = {"displayname": "Alice", "avatar_url": "mxc://x/y"}

    result = runner.invoke(app, ["user"])

    assert result.exit_code == 0
    assert result.output.splitlines() == [
        "UserID     : @a:example.org",
        "DisplayName: Alice",
        "AvatarURL  : mxc://x/y",
    ]


def test_logout_requires_force(stub_client, session_file):
    result = runner.invoke(app, ["logout"])

    assert result.exit_code == 1
    assert "--force" in result.output
    assert session_file.exists()
    assert stub_client.calls == []


def test_logout_removes_session(stub_client, session_file):
    stub_client.responses["logout"] = None

    result = runner.invoke(app, ["logout", "--force"])

    assert result.exit_code == 0
    assert stub_client.calls == [("logout", (), {})]
    assert not session_file.exists()


@pytest.mark.parametrize(
    "argv, message",
    [
        (["room", "--join", "--members"], "--members cannot be combined with --join"),
        (["room", "--leave", "--members"], "--members cannot be combined with --leave"),
        (["room", "--invite", "--members"], "--members cannot be combined with --invite"),
        (["room", "--list", "--direct"], "only apply to --create"),
        (["room", "--join", "--invites", "@b:example.org"], "only apply to --create"),
        (["room", "--members", "--profile", "public"], "only apply to --create"),
    ],
)
def test_room_rejects_flags_that_do_not_apply(stub_client, argv, message):
    result = runner.invoke(app, ["-U", "@b:example.org", "-R", ROOM] + argv)

    assert result.exit_code == 1
    assert message in result.output
    assert stub_client.calls == []


# ========== global flags after the subcommand ==========

def test_room_and_message_flags_after_send(stub_client):
    stub_client.responses["send_message"] = "$sent"

    result = runner.invoke(app, ["send", "-R", ROOM, "-m", "hi"])

    assert result.exit_code == 0, result.output
    assert stub_client.calls[-1] == ("send_message", (ROOM, "hi"), {"msgtype": "m.text"})


def test_json_flag_after_version(stub_client):
    stub_client.responses["versions"] = {"versions": ["v1.1"], "unstable_features": {}}

    result = runner.invoke(app, ["version", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["versions"] == ["v1.1"]


def test_leaf_flag_overrides_root_flag(stub_client):
    stub_client.responses["invite"] = None

    result = runner.invoke(app, ["-R", "!old:example.org", "room", "--invite", "--room", ROOM, "--user", "@b:example.org"])

    assert result.exit_code == 0, result.output
    assert stub_client.calls[-1] == ("invite", (ROOM, "@b:example.org"), {})


def test_nested_leaf_accepts_global_flags(stub_client):
    stub_client.responses["admin_room_members"] = ["@a:example.org"]

    result = runner.invoke(app, ["synapse", "room", "--members", "-R", ROOM, "-J"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == ["@a:example.org"]
    assert stub_client.calls[-1] == ("admin_room_members", (ROOM,), {})

import pytest

from procdev.local.port import rewrite_port


@pytest.mark.parametrize(
    "command, port, expected",
    [
        ("bin/rails server -p 3000", 4000, "bin/rails server -p 4000"),
        ("bin/rails server -p=3000", 4000, "bin/rails server -p=4000"),
        ("bin/rails server --port 3000", 4000, "bin/rails server --port 4000"),
        ("bin/rails server --port=3000", 4000, "bin/rails server --port=4000"),
        ("bin/rails server -p3000", 4000, "bin/rails server -p4000"),
        ("bin/rails server -p3000 -b 0.0.0.0", 4000, "bin/rails server -p4000 -b 0.0.0.0"),
        ("bin/rails server -p 3000 -b 0.0.0.0", 4000, "bin/rails server -p 4000 -b 0.0.0.0"),
        ("bin/rails server -b 0.0.0.0 -p 3000", 4000, "bin/rails server -b 0.0.0.0 -p 4000"),
        ("bin/rails server -p 8080", 9000, "bin/rails server -p 9000"),
        ("bin/rails server -p 3", 12345, "bin/rails server -p 12345"),
    ],
)
def test_rewrite_port(command, port, expected):
    assert rewrite_port(command, port) == expected


def test_unmatched_command_is_returned_unchanged():
    command = "bin/rails server"
    assert rewrite_port(command, 4000) is command


@pytest.mark.parametrize("command", ["bin/dev -pX4000", "rails s -p", "rails s --port", "rails s --port=abc", "bin/vite dev"])
def test_flag_without_digits_is_not_a_match(command):
    assert rewrite_port(command, 4000) is command


def test_equals_form_wins_over_bare_form():
    assert rewrite_port("cmd -p=3000 -pX4000", 9000) == "cmd -p=9000 -pX4000"


def test_long_flag_wins_over_short_flag():
    assert rewrite_port("cmd -p 1111 --port 2222", 9000) == "cmd -p 1111 --port 9000"


def test_only_one_replacement_is_made():
    assert rewrite_port("cmd -p 3000 && other -p 3000", 4000) == "cmd -p 4000 && other -p 3000"


def test_falls_through_to_next_pattern_when_digits_are_missing():
    assert rewrite_port("server --port abc -p 3000", 4000) == "server --port abc -p 4000"


def test_only_the_port_digits_change():
    command = "FOO=1 bin/rails server --port=3000 -b 127.0.0.1 # note"
    result = rewrite_port(command, 4321)
    start = command.index("3000")
    assert result[:start] == command[:start]
    assert result[start:start + 4] == "4321"
    assert result[start + 4:] == command[start + 4:]


def test_non_ascii_digits_are_not_part_of_the_port():
    assert rewrite_port("server -p 30٣", 4000) == "server -p 4000٣"

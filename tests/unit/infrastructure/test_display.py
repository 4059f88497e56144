import io
import json

import pytest
from rich.console import Console

from chanscope.domain.models.channel import ChannelMembership, PopularFrame
from chanscope.infrastructure.cli.display import ConsoleDisplay

from conftest import make_channel


def buffer_console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


@pytest.fixture
def consoles():
    return buffer_console(), buffer_console()


def output(console: Console) -> str:
    return console.file.getvalue()


def test_display_channels_table(consoles):
    out, err = consoles
    display = ConsoleDisplay(console=out, err_console=err)
    items = [
        ChannelMembership(make_channel("base", name="Base", followers=12345), True),
        ChannelMembership(make_channel("memes", name="Memes", followers=7), False),
    ]

    display.display_channels(3, items)

    text = output(out)
    assert "Channels for FID 3 (1 member / 2 followed)" in text
    assert "/base" in text and "/memes" in text
    assert "12,345" in text
    assert output(err) == ""


def test_display_channels_json(consoles):
    out, err = consoles
    display = ConsoleDisplay(as_json=True, console=out, err_console=err)

    display.display_channels(3, [ChannelMembership(make_channel("base", followers=10), True)])

    payload = json.loads(output(out))
    assert payload["fid"] == 3
    assert payload["channels"][0]["id"] == "base"
    assert payload["channels"][0]["isMember"] is True
    assert payload["channels"][0]["followerCount"] == 10


def test_display_raw_channels_json(consoles):
    out, err = consoles
    ConsoleDisplay(as_json=True, console=out, err_console=err).display_raw_channels(3, [make_channel("a")])
    payload = json.loads(output(out))
    assert "isMember" not in payload["channels"][0]


def test_display_frames(consoles):
    out, err = consoles
    display = ConsoleDisplay(console=out, err_console=err)
    display.display_frames(3, [PopularFrame(url="https://frame.one", score=0.5, name="One"), PopularFrame(url="https://two")])

    text = output(out)
    assert "Popular frames for FID 3" in text
    assert "One" in text and "https://two" in text
    assert "0.5000" in text


def test_display_frames_json(consoles):
    out, err = consoles
    ConsoleDisplay(as_json=True, console=out, err_console=err).display_frames(3, [PopularFrame(url="https://f", name="F")])
    assert json.loads(output(out))["frames"] == [{"url": "https://f", "score": 0.0, "frameName": "F"}]


def test_display_error_goes_to_stderr_console(consoles):
    out, err = consoles
    ConsoleDisplay(as_json=True, console=out, err_console=err).display_error("HTTP 503: Service Unavailable")

    assert "HTTP 503: Service Unavailable" in output(err)
    assert "Error" in output(err)
    assert output(out) == ""


def test_display_info_is_silent_in_json_mode(consoles):
    out, err = consoles
    ConsoleDisplay(as_json=True, console=out, err_console=err).display_info("fetching")
    assert output(out) == "" and output(err) == ""

    ConsoleDisplay(console=out, err_console=err).display_info("fetching")
    assert "fetching" in output(err)

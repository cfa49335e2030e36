"""Tests for the command line entry point."""

import pytest

import main


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["status", "score", "progress"])
async def test_list_value_required(
    action: str, capsys: pytest.CaptureFixture[str]
) -> None:
    """Value-taking list actions exit with a usage error when it is missing."""
    with pytest.raises(SystemExit) as exc_info:
        await main.run(["list", action, "5"])

    assert exc_info.value.code == 2
    assert f"list {action} requires a value" in capsys.readouterr().err


def test_main_does_not_swallow_usage_errors() -> None:
    """Usage errors keep argparse's exit code instead of the fatal-error path."""
    with pytest.raises(SystemExit) as exc_info:
        main.main(["list", "score", "5"])

    assert exc_info.value.code == 2


def test_list_actions_without_value_parse() -> None:
    """Add, delete and rewatch only take the media id."""
    args = main.build_parser().parse_args(["list", "rewatch", "5"])

    assert (args.action, args.media_id, args.value) == ("rewatch", 5, None)

"""Tests for discussion.open_discussion with tmux replaced by a mock process."""

import asyncio
import shlex
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pagedigest.config import Settings
from pagedigest.errors import DiscussionError
from pagedigest.services.discussion import discussion_prompt, open_discussion

_SPAWN = "pagedigest.services.discussion.asyncio.create_subprocess_exec"


def _process(returncode=0, stderr=b""):
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    return proc


def test_prompt_names_both_files():
    prompt = discussion_prompt("2024-05-01_a-post")
    assert "articles/2024-05-01_a-post.md" in prompt
    assert "summaries/2024-05-01_a-post.md" in prompt


def test_opens_tmux_window(tmp_path):
    settings = Settings(home=tmp_path, tmux_target="work", discuss_command="claude")
    with patch(_SPAWN, new=AsyncMock(return_value=_process())) as spawn:
        asyncio.run(open_discussion("2024-05-01_a-post", settings))

    argv = spawn.await_args.args
    assert argv[:4] == ("tmux", "new-window", "-t", "work")
    command = argv[-1]
    assert command.startswith(f"cd {shlex.quote(str(tmp_path))} && claude ")
    assert shlex.split(command)[-1] == discussion_prompt("2024-05-01_a-post")


def test_tmux_failure(tmp_path):
    proc = _process(returncode=1, stderr=b"no server running")
    with patch(_SPAWN, new=AsyncMock(return_value=proc)):
        with pytest.raises(DiscussionError, match="no server running"):
            asyncio.run(open_discussion("slug", Settings(home=tmp_path)))


def test_tmux_missing(tmp_path):
    with patch(_SPAWN, new=AsyncMock(side_effect=FileNotFoundError("tmux"))):
        with pytest.raises(DiscussionError, match="Could not start tmux"):
            asyncio.run(open_discussion("slug", Settings(home=tmp_path)))

import asyncio
import logging
import shlex

from pagedigest.config import Settings
from pagedigest.errors import DiscussionError

logger = logging.getLogger(__name__)


def discussion_prompt(slug: str) -> str:
    return (
        f"Read articles/{slug}.md and summaries/{slug}.md. "
        "Let me know what you think and let's discuss."
    )


async def open_discussion(slug: str, settings: Settings) -> None:
    """Open a tmux window running the discussion assistant, seeded with *slug*."""
    command = (
        f"cd {shlex.quote(str(settings.home))} && "
        f"{settings.discuss_command} {shlex.quote(discussion_prompt(slug))}"
    )
    argv = ["tmux", "new-window", "-t", settings.tmux_target, "-n", "digest", command]
    logger.info("Opening discussion for %s", slug)

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
    except OSError as exc:
        raise DiscussionError(f"Could not start tmux: {exc}") from exc

    if proc.returncode != 0:
        raise DiscussionError(
            f"tmux exited with status {proc.returncode}: {stderr.decode(errors='replace').strip()}"
        )

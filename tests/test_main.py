"""Tests for the command-line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock

from pagedigest.errors import ExtractionError
from pagedigest.main import main
from pagedigest.models.artifact import SummarizeResult

_RESULT = SummarizeResult(
    slug="2024-05-01_a-post",
    title="A Post",
    summary="TL;DR: it works.",
    html_path="/home/me/.pagedigest/html/2024-05-01_a-post.html",
    kind="web",
)


def _pipeline(result=_RESULT):
    pipeline = MagicMock()
    pipeline.summarize = AsyncMock(return_value=result)
    pipeline.discuss = AsyncMock(return_value=result.slug)
    return pipeline


class TestMain:
    def test_human_output(self, capsys):
        pipeline = _pipeline()
        assert main(["https://example.com/post"], pipeline) == 0

        out = capsys.readouterr().out
        assert "A Post" in out
        assert "TL;DR: it works." in out
        assert "Saved: 2024-05-01_a-post" in out
        pipeline.summarize.assert_awaited_once_with(
            "https://example.com/post", title=None, redo=False, site=False
        )

    def test_cached_marker(self, capsys):
        main(["https://example.com/post"], _pipeline(_RESULT.model_copy(update={"cached": True})))
        assert "(cached)" in capsys.readouterr().out

    def test_flags_forwarded(self):
        pipeline = _pipeline()
        main(["https://docs.example.com", "--site", "--redo", "--title", "Docs"], pipeline)
        pipeline.summarize.assert_awaited_once_with(
            "https://docs.example.com", title="Docs", redo=True, site=True
        )

    def test_json_output(self, capsys):
        main(["--json"], _pipeline())
        payload = json.loads(capsys.readouterr().out)
        assert payload["slug"] == "2024-05-01_a-post"
        assert payload["cached"] is False

    def test_discuss_after_summarize(self):
        pipeline = _pipeline()
        main(["https://example.com/post", "--discuss"], pipeline)
        pipeline.discuss.assert_awaited_once_with(slug="2024-05-01_a-post")

    def test_discuss_latest_skips_summarize(self):
        pipeline = _pipeline()
        main(["--discuss-latest"], pipeline)
        pipeline.discuss.assert_awaited_once_with(url=None)
        pipeline.summarize.assert_not_awaited()

    def test_discuss_url(self):
        pipeline = _pipeline()
        main(["--discuss-url", "https://example.com/post"], pipeline)
        pipeline.discuss.assert_awaited_once_with(url="https://example.com/post")

    def test_error_exits_non_zero(self, capsys):
        pipeline = _pipeline()
        pipeline.summarize.side_effect = ExtractionError("No browser tabs found")
        assert main([], pipeline) == 1
        assert "Error: No browser tabs found" in capsys.readouterr().err

    def test_error_as_json(self, capsys):
        pipeline = _pipeline()
        pipeline.summarize.side_effect = ExtractionError("No browser tabs found")
        assert main(["--json"], pipeline) == 1
        assert json.loads(capsys.readouterr().out) == {"error": "No browser tabs found"}

    def test_unexpected_failure_exits_non_zero(self, capsys):
        pipeline = _pipeline()
        pipeline.summarize.side_effect = RuntimeError("socket went away")
        assert main(["https://example.com/post"], pipeline) == 1
        assert "Error: Unexpected failure: socket went away" in capsys.readouterr().err

    def test_regen_html(self, capsys):
        pipeline = _pipeline()
        pipeline.regenerate_html = MagicMock(return_value=["2024-05-01_a-post", "2024-05-02_b"])
        assert main(["--regen-html"], pipeline) == 0
        out = capsys.readouterr().out
        assert "regenerated: 2024-05-01_a-post" in out
        assert "regenerated: 2024-05-02_b" in out
        pipeline.summarize.assert_not_awaited()

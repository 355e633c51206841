import argparse
import asyncio
import json
import logging
import logging.config
import sys
from typing import List, Optional

from pagedigest.config import Settings
from pagedigest.errors import PageDigestError
from pagedigest.models.artifact import SummarizeResult
from pagedigest.services.pipeline import Pipeline

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stderr",
        },
    },
    "root": {"level": "INFO", "handlers": ["console"]},
}

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagedigest",
        description="Summarize a web page, a YouTube video or a whole site, and keep the result.",
    )
    parser.add_argument("url", nargs="?", help="URL to summarize (default: the active browser tab)")
    parser.add_argument("--site", action="store_true", help="crawl and summarize the whole site")
    parser.add_argument("--redo", action="store_true", help="ignore any stored summary")
    parser.add_argument("--title", help="override the extracted title")
    parser.add_argument("--json", action="store_true", help="print the result as JSON")
    parser.add_argument(
        "--discuss", action="store_true", help="open a discussion session after summarizing"
    )
    parser.add_argument(
        "--discuss-latest",
        action="store_true",
        help="discuss the most recent summary without summarizing anything",
    )
    parser.add_argument("--discuss-url", metavar="URL", help="discuss the stored summary of URL")
    parser.add_argument(
        "--regen-html",
        action="store_true",
        help="re-render the HTML page of every stored summary",
    )
    return parser


def format_result(result: SummarizeResult) -> str:
    rule = "=" * min(max(len(result.title), 20), 80)
    lines = [result.title, rule, "", result.summary, ""]
    if result.cached:
        lines.append(f"(cached) {result.slug}  use --redo to summarize again")
    else:
        lines.append(f"Saved: {result.slug}")
    lines.append(result.html_path)
    return "\n".join(lines)


async def _run(args: argparse.Namespace, pipeline: Pipeline) -> None:
    if args.regen_html:
        slugs = pipeline.regenerate_html()
        if args.json:
            print(json.dumps({"regenerated": slugs}))
        else:
            for slug in slugs:
                print(f"regenerated: {slug}")
        return

    if args.discuss_latest or args.discuss_url:
        slug = await pipeline.discuss(url=args.discuss_url)
        if args.json:
            print(json.dumps({"slug": slug}))
        return

    result = await pipeline.summarize(args.url, title=args.title, redo=args.redo, site=args.site)
    if args.json:
        print(result.model_dump_json())
    else:
        print(format_result(result))

    if args.discuss:
        await pipeline.discuss(slug=result.slug)


def _report_error(args: argparse.Namespace, message: str) -> None:
    if args.json:
        print(json.dumps({"error": message}))
    else:
        print(f"Error: {message}", file=sys.stderr)


def main(argv: Optional[List[str]] = None, pipeline: Optional[Pipeline] = None) -> int:
    args = build_parser().parse_args(argv)
    if pipeline is None:
        pipeline = Pipeline.from_settings(Settings())

    try:
        asyncio.run(_run(args, pipeline))
    except PageDigestError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        _report_error(args, str(exc))
        return 1
    except Exception as exc:
        logger.exception("Unhandled exception")
        _report_error(args, f"Unexpected failure: {exc}")
        return 1
    return 0


def run() -> None:
    logging.config.dictConfig(LOGGING_CONFIG)
    sys.exit(main())


if __name__ == "__main__":
    run()

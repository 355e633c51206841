"""Tests for identity.normalize, video detection and slug generation."""

from datetime import date

import pytest

from pagedigest.errors import IdentityResolutionError
from pagedigest.services.identity import (
    extract_video_id,
    generate_slug,
    is_video_url,
    normalize,
    root_url,
)

_VIDEO_ID = "dQw4w9WgXcQ"


class TestVideoUrls:
    @pytest.mark.parametrize(
        "url",
        [
            f"https://www.youtube.com/watch?v={_VIDEO_ID}",
            f"https://youtube.com/watch?feature=share&v={_VIDEO_ID}&t=42s",
            f"https://m.youtube.com/watch?v={_VIDEO_ID}#comments",
            f"https://youtu.be/{_VIDEO_ID}",
            f"https://youtu.be/{_VIDEO_ID}?si=abcdef",
            f"https://www.youtube.com/shorts/{_VIDEO_ID}",
            f"https://www.youtube.com/live/{_VIDEO_ID}",
        ],
    )
    def test_all_shapes_share_one_key(self, url):
        assert normalize(url) == f"video:{_VIDEO_ID}"

    def test_extract_video_id(self):
        assert extract_video_id(f"https://youtu.be/{_VIDEO_ID}") == _VIDEO_ID

    def test_plain_page_is_not_video(self):
        assert is_video_url("https://example.com/watch?v=abc") is False
        assert extract_video_id("https://www.youtube.com/feed/trending") is None


class TestWebUrls:
    def test_trailing_slash_removed(self):
        assert normalize("https://example.com/post/") == normalize("https://example.com/post")

    def test_fragment_removed(self):
        assert normalize("https://example.com/post#intro") == "https://example.com/post"

    def test_fragment_and_slash_together(self):
        assert normalize("https://example.com/post/#intro") == "https://example.com/post"

    def test_query_kept(self):
        assert normalize("https://example.com/search?q=x") == "https://example.com/search?q=x"

    def test_scheme_not_canonicalized(self):
        assert normalize("http://example.com/a") != normalize("https://example.com/a")

    def test_only_one_trailing_slash_removed(self):
        assert normalize("https://example.com/a//") == "https://example.com/a/"

    def test_relative_url_rejected(self):
        with pytest.raises(IdentityResolutionError):
            normalize("/just/a/path")

    def test_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            normalize("not a url")


class TestSiteUrls:
    def test_site_key_is_origin(self):
        assert normalize("https://docs.example.com/guide/intro#x", "site") == "https://docs.example.com"

    def test_any_page_of_a_site_shares_the_key(self):
        a = normalize("https://docs.example.com/a", "site")
        b = normalize("https://docs.example.com/b/c/", "site")
        assert a == b

    def test_root_url(self):
        assert root_url("https://example.com:8080/a/b?c=1") == "https://example.com:8080"

    def test_video_url_as_site_keys_on_host(self):
        assert normalize(f"https://youtu.be/{_VIDEO_ID}", "site") == "https://youtu.be"


class TestGenerateSlug:
    def test_date_prefix_and_hyphens(self):
        assert generate_slug("Hello, World!", date(2024, 5, 1)) == "2024-05-01_hello-world"

    def test_accents_are_folded(self):
        assert generate_slug("Café Übersicht", date(2024, 5, 1)) == "2024-05-01_cafe-ubersicht"

    def test_hyphens_collapsed(self):
        assert generate_slug("a -- b  -  c", date(2024, 1, 2)) == "2024-01-02_a-b-c"

    def test_truncated_without_trailing_hyphen(self):
        slug = generate_slug("word " * 40, date(2024, 1, 2))
        body = slug.split("_", 1)[1]
        assert len(body) <= 60
        assert not body.endswith("-")

    def test_empty_title_falls_back(self):
        assert generate_slug("!!!", date(2024, 1, 2)) == "2024-01-02_untitled"

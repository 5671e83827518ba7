import pytest

from blog_archive_scraper.config import DEFAULT_TAG_VOCABULARY, load_config


def test_defaults():
    cfg = load_config()
    assert cfg.listing_url == "https://beyondchats.com/blogs/"
    assert cfg.article_limit == 5
    assert cfg.timeout_ms == 30000
    assert cfg.listing_settle_seconds == 2.0
    assert cfg.article_settle_seconds == 1.0
    assert cfg.politeness_delay_seconds == 1.0
    assert cfg.selection_order == "forward"
    assert cfg.follow_last_page is True
    assert cfg.min_content_chars == 100
    assert cfg.max_title_chars == 500
    assert cfg.tag_vocabulary == DEFAULT_TAG_VOCABULARY
    assert cfg.robots_enforce is False
    assert cfg.output_file.name == "articles.csv"


def test_yaml_file_is_merged_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "crawl:\n"
        "  article_limit: 3\n"
        "render:\n"
        "  viewport:\n"
        "    width: 800\n"
        "storage:\n"
        "  output_dir: out\n"
        "  output_file: ''\n",
        encoding="utf-8",
    )
    cfg = load_config(path)

    assert cfg.article_limit == 3
    # Sibling keys in a partially overridden section survive.
    assert cfg.politeness_delay_seconds == 1.0
    assert cfg.viewport == {"width": 800, "height": 1080}
    assert cfg.output_file is None


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "c.yaml"
    path.write_text("crawl:\n  selection_order: reverse\n", encoding="utf-8")
    monkeypatch.setenv("BLOG_SCRAPER_CONFIG", str(path))
    assert load_config().selection_order == "reverse"


def test_environment_and_explicit_overrides(monkeypatch):
    monkeypatch.setenv("BLOG_SCRAPER_LISTING_URL", "https://other.example/blog/")
    monkeypatch.setenv("BLOG_SCRAPER_LOG_LEVEL", "debug")
    cfg = load_config()
    assert cfg.listing_url == "https://other.example/blog/"
    assert cfg.log_level == "DEBUG"

    cfg = load_config(overrides={"source": {"listing_url": "https://third.example/"}})
    assert cfg.listing_url == "https://third.example/"


def test_invalid_selection_order_fails_at_load(tmp_path):
    with pytest.raises(ValueError, match="selection_order"):
        load_config(overrides={"crawl": {"selection_order": "random"}})

    path = tmp_path / "bad.yaml"
    path.write_text("crawl:\n  selection_order: sideways\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_custom_tag_vocabulary_is_normalized():
    cfg = load_config(overrides={"extract": {"tag_vocabulary": [" Python ", "AI", ""]}})
    assert cfg.tag_vocabulary == ("python", "ai")

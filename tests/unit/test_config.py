"""Tests for configuration loading."""

from pathlib import Path

from price_compare.config import BrowserConfig, CacheConfig, Config, ServerConfig


class TestConfig:
    def test_defaults(self):
        cfg = Config()

        assert cfg.crawl.initial_wait_ms == 3000
        assert cfg.crawl.max_scroll_attempts == 30
        assert cfg.crawl.currency_symbol == "₹"
        assert cfg.cache.ttl_seconds == 21600
        assert cfg.competitors_path.name == "competitors.yml"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("CHROME_EXECUTABLE_PATH", "/usr/bin/chromium")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
        monkeypatch.setenv("COMPARISON_CACHE_TTL", "600")
        monkeypatch.setenv("PORT", "9100")
        monkeypatch.setenv("LISTEN_HOST", "0.0.0.0")

        assert BrowserConfig().executable_path == "/usr/bin/chromium"
        cache = CacheConfig()
        assert cache.redis_url == "redis://cache:6379/2"
        assert cache.ttl_seconds == 600
        server = ServerConfig()
        assert server.port == 9100
        assert server.listen_host == "0.0.0.0"

    def test_competitors_file_from_environment(self, monkeypatch, tmp_path):
        target = tmp_path / "shops.yml"
        monkeypatch.setenv("COMPETITORS_FILE", str(target))

        assert Config().competitors_path == Path(target)

    def test_yaml_overrides(self, tmp_path):
        (tmp_path / "crawl.yml").write_text(
            "crawl:\n  scroll_wait_ms: 100\n  currency_symbol: '$'\ncache:\n  ttl_seconds: 60\n",
            encoding="utf-8",
        )

        cfg = Config(config_dir=tmp_path)

        assert cfg.crawl.scroll_wait_ms == 100
        assert cfg.crawl.currency_symbol == "$"
        assert cfg.crawl.initial_wait_ms == 3000
        assert cfg.cache.ttl_seconds == 60

    def test_missing_yaml_uses_defaults(self, tmp_path):
        cfg = Config(config_dir=tmp_path)

        assert cfg.crawl.scroll_wait_ms == 2500
        assert cfg.competitors_path == tmp_path / "competitors.yml"

"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "cehennemarr",
    "environment": "dev",
    "site": {
        "base_url": "https://www.hdfilmcehennemi.ws",
        "embed_base_url": "https://hdfilmcehennemi.mobi",
        "protected_domains": ["hdfilmcehennemi.ws", "hdfilmcehennemi.mobi"],
        "metadata_base_url": "https://v3-cinemeta.strem.io/meta",
        "match_strategy": "imdb_only",
        "title_match_threshold": 0.4,
    },
    "http": {
        "timeout_seconds": 15.0,
        "max_retries": 3,
        "retry_delay_seconds": 1.0,
        "max_concurrent": 5,
        "user_agent": (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        "accept_language": "tr-TR,tr;q=0.9,en;q=0.8",
    },
    "proxy": {
        "mode": "auto",
        "max_proxy_attempts": 5,
        "no_proxy_pause_seconds": 2.0,
        "candidate_ttl_seconds": 1800,
        "known_good_ttl_seconds": 3600,
        "test_timeout_seconds": 5.0,
        "max_to_test": 20,
        "test_batch_size": 10,
        "min_content_length": 1000,
        "discovery_rounds": 2,
        "round_pause_seconds": 3.0,
        "feeds": [
            {
                "url": "https://raw.githubusercontent.com/TheSpeedX/SOCKS-List/master/http.txt",
                "protocol": "http",
                "format": "text",
            },
            {
                "url": "https://raw.githubusercontent.com/TheSpeedX/SOCKS-List/master/socks4.txt",
                "protocol": "socks4",
                "format": "text",
            },
            {
                "url": "https://raw.githubusercontent.com/TheSpeedX/SOCKS-List/master/socks5.txt",
                "protocol": "socks5",
                "format": "text",
            },
        ],
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "search_ttl_seconds": 600,
        "episodes_ttl_seconds": 1800,
        "metadata_ttl_seconds": 1800,
        "success_ttl_seconds": 900,
    },
}

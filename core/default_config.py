from __future__ import annotations

from copy import deepcopy

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_CONFIG = {
    "paths": {
        "data_dir": "data",
        "log_dir": "data/logs",
        "blog_index": "app/blog/blog-data.ts",
        "content_dir": "app/blog/content",
        "content_hashes": "scripts/content-hashes.json",
    },
    "crawler": {
        "user_agent": BROWSER_USER_AGENT,
        "request_timeout": 10,
        "source_delay": 1,
        "article_delay": 2,
        "max_per_source": 5,
        "max_candidates": 10,
        "target_articles": 4,
        "min_content_length": 200,
        "max_content_length": 2000,
        "max_topics": 3,
        "sources": [
            {
                "name": "AI News",
                "urls": [
                    "https://www.artificialintelligence-news.com/",
                    "https://venturebeat.com/ai/",
                    "https://techcrunch.com/category/artificial-intelligence/",
                    "https://www.theverge.com/ai-artificial-intelligence",
                ],
            },
            {
                "name": "Blockchain News",
                "urls": [
                    "https://cointelegraph.com/",
                    "https://decrypt.co/",
                    "https://www.coindesk.com/",
                    "https://blockworks.co/",
                ],
            },
        ],
    },
    "generation": {
        "production_base_url": "https://fais.world",
        "local_base_url": "http://localhost:3000",
        "endpoint": "/api/admin/ai-tools/generate-article",
        "request_timeout": None,
        "tone": "informative",
        "word_count": 800,
    },
    "blog": {
        "author": "Fantastic AI",
        "author_image": "author-fantastic",
        "featured_probability": 0.15,
        "placeholder_images": {
            "ai": "/images/blog/placeholder-ai.jpg",
            "blockchain": "/images/blog/placeholder-blockchain.jpg",
            "technology": "/images/blog/placeholder-technology.jpg",
            "business": "/images/blog/placeholder-business.jpg",
        },
    },
    "duplicates": {
        "similarity_threshold": 0.7,
        "phrase_similarity": 0.8,
        "phrase_overlap_threshold": 0.5,
        "min_common_phrases": 4,
    },
    "content_hash": {"max_entries": 100},
    "replicate": {
        "api_base": "https://api.replicate.com/v1",
        "poll_interval": 5,
        "max_attempts": 60,
        "request_timeout": 30,
    },
    "blob": {
        "api_base": "https://blob.vercel-storage.com",
        "folder": "ai-generated",
        "request_timeout": 60,
    },
    "writer": {
        "model": "gpt-4o",
        "image_model": "google/imagen-4",
    },
    "run": {
        "min_articles": 1,
        "max_articles": 2,
        "inter_article_delay": 10,
        "use_news_crawler": False,
        "preliminary_check": True,
        "preliminary_threshold": 0.65,
        "preliminary_word_count": 600,
    },
    "knowledge_base": {
        "enabled": True,
        "endpoint": "/api/cron/update-knowledge-base",
        "request_timeout": 120,
    },
    "scheduler": {
        "enabled": False,
        "cron": "0 6 * * *",
        "interval_minutes": None,
        "timezone": "UTC",
    },
    "database": {"url": "sqlite:///data/fais.sqlite"},
    "logging": {"level": "INFO"},
}


def default_config_copy() -> dict:
    return deepcopy(DEFAULT_CONFIG)

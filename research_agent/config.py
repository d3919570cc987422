from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Firecrawl (search + batch scrape)
    firecrawl_api_key: str = ""
    firecrawl_base_url: str = "https://api.firecrawl.dev"

    # Gemini through its OpenAI-compatible endpoint
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    gemini_model: str = "gemini-2.0-flash"

    # Research loop
    default_max_depth: int = 3
    max_depth_limit: int = 5
    search_result_limit: int = 10
    extract_top_results: int = 5
    fallback_top_results: int = 3
    extract_max_content_chars: int = 4000
    extract_poll_interval_seconds: float = 2.0
    extract_timeout_seconds: float = 90.0
    analysis_finding_chars: int = 1500
    analysis_temperature: float = 0.7
    report_temperature: float = 0.8
    report_max_tokens: int = 8192

    # Timeouts
    http_timeout_seconds: float = 30.0
    llm_timeout_seconds: float = 120.0
    research_timeout_seconds: float = 600.0

    # App
    cors_origins: str = "*"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


REQUIRED_CREDENTIALS = (
    ("FIRECRAWL_API_KEY", "firecrawl_api_key"),
    ("GEMINI_API_KEY", "gemini_api_key"),
)


def missing_credentials(current: Settings | None = None) -> list[str]:
    """Return the env var names of provider keys that are not configured."""
    active = current or settings
    return [
        env_name
        for env_name, attr in REQUIRED_CREDENTIALS
        if not str(getattr(active, attr, "") or "").strip()
    ]


settings = Settings()

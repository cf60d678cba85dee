from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Failover
    default_strategy: str = "cost_effective"  # cost_effective | speed_first | quality_first
    failure_policy: str = "stop"  # stop | continue
    scrape_max_parallel: int = 1

    # Jina AI Reader (key optional, public tier works without one)
    enable_jina: bool = True
    jina_api_key: str = ""
    jina_api_host: str = "https://r.jina.ai"

    # Firecrawl (key required once enabled)
    enable_firecrawl: bool = False
    firecrawl_api_key: str = ""
    firecrawl_api_host: str = "https://api.firecrawl.dev"
    firecrawl_scrape_path: str = "/v0/scrape"

    # Proxy for direct fetches
    proxy_enabled: bool = False
    proxy_host: str = ""
    proxy_port: int = 8080
    proxy_protocol: str = "http"  # http | https | socks5
    proxy_username: str = ""
    proxy_password: str = ""

    # Network
    request_timeout_ms: int = 30000
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    retry_count: int = 2

    # Output
    output_format: str = "markdown"  # markdown | text | html | json
    max_length: int = 0
    include_metadata: bool = True
    extract_main_content: bool = True

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_to_file: bool = False
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()

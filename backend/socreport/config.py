from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # SQLite DB path (default: backend/soc_reports.db)
    DATABASE_URL: str = "sqlite:///./soc_reports.db"

    # CORS
    ALLOWED_ORIGINS: str = "*"  # comma separated in production

    # App
    APP_NAME: str = "SOC Report Pipeline API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Wazuh Manager API (agents, rules)
    WAZUH_API_URL: str = "https://localhost:55000"
    WAZUH_API_USER: str = "wazuh"
    WAZUH_API_PASSWORD: str = ""
    WAZUH_VERIFY_SSL: bool = False

    # Wazuh Indexer (alerts, fim, vulnerabilities)
    WAZUH_INDEXER_URL: str = "https://localhost:9200"
    WAZUH_INDEXER_USER: str = "admin"
    WAZUH_INDEXER_PASSWORD: str = "admin"
    WAZUH_INDEXER_VERIFY_SSL: bool = False

    # DFIR-IRIS (cases)
    IRIS_API_URL: str = "https://localhost:8443"
    IRIS_API_KEY: str = ""
    IRIS_VERIFY_SSL: bool = False

    # Queries
    REQUEST_TIMEOUT: float = 15.0
    DEFAULT_QUERY_LIMIT: int = 1000

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


settings = Settings()

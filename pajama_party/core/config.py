"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. The same Settings object feeds both halves of the
platform: the FastAPI service (MongoDB, CORS, caches) and the async
client core (API base URL, search debounce, stats polling, map timings).

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── MongoDB ───────────────────────────────────────────────────
    # Local dev default matches a plain docker `mongo` container.
    mongo_uri: str = "mongodb://localhost:27017/pajama_party"
    mongo_db_name: str = "pajama_party"

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the map front end.
    cors_origins_str: str = "http://localhost:3000,https://pajama-party.eu"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Dreams ────────────────────────────────────────────────────
    dream_ttl_days: int = 30
    community_threshold: int = 2   # dreams per origin station that make a community

    # ─── Pyjama party signups ──────────────────────────────────────
    signup_retention_days: int = 730

    # ─── Caches (seconds) ──────────────────────────────────────────
    stats_cache_seconds: int = 300
    reality_cache_seconds: int = 600

    # Static night-train network shipped with the package.
    reality_data_path: str = str(_DATA_DIR / "reality-network.geojson")

    # ─── Public site ───────────────────────────────────────────────
    public_site_url: str = "https://pajama-party.eu"

    # ─── Client core ───────────────────────────────────────────────
    # Used by pajama_party.client / pajama_party.map when they talk to the API.
    api_base_url: str = "http://localhost:8000"
    api_timeout_seconds: float = 30.0
    search_debounce_ms: int = 300
    search_min_query_length: int = 2
    search_cache_ttl_seconds: int = 300
    search_cache_size: int = 50
    stats_refresh_seconds: int = 60
    layer_transition_ms: int = 300
    reality_fetch_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()

from pydantic_settings import BaseSettings


DEFAULT_RESEARCH_GOAL = (
    "Perform comprehensive property analysis including: "
    "1) Verify administrative boundaries for Ho Chi Minh City ward mergers, "
    "2) Assess geospatial risks (flood and fire), "
    "3) Calculate valuation and land clearance compensation, "
    "4) Evaluate agent quotes."
)


class Settings(BaseSettings):
    # OpenRouter
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "google/gemini-2.5-flash"
    openrouter_model: str = ""

    # Research loop
    research_max_steps: int = 4
    decision_temperature: float = 0.3
    search_temperature: float = 0.3
    thinking_budget: int = 0  # 0 disables reasoning tokens
    research_goal: str = DEFAULT_RESEARCH_GOAL

    # Google Maps (location verification)
    google_maps_api_key: str = ""
    google_places_url: str = "https://maps.googleapis.com/maps/api/place/findplacefromtext/json"

    # Upstream business services
    lead_service_url: str = "http://localhost:7103"
    property_service_url: str = "http://localhost:7101"
    quote_service_url: str = "http://localhost:7104"
    upstream_timeout_seconds: float = 15.0

    # PostgreSQL database (empty keeps contexts and reports in memory)
    database_url: str = ""

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()

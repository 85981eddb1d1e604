from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    cache_backend: str = "redis"  # "redis" or "memory"

    # Google (discovery, geocoding, reviews)
    google_places_api_key: str = ""
    google_geocoding_api_key: str = ""
    google_maps_base_url: str = "https://maps.googleapis.com/maps/api"

    # Booking.com Demand API (pricing)
    booking_api_key: str = ""
    booking_affiliate_id: str = ""
    booking_base_url: str = "https://demandapi.booking.com/3.1"
    booking_cache_ttl: int = 1800
    booking_country: str = "us"
    booking_currency: str = "USD"

    # Hotel Search
    hotel_search_cache_ttl: int = 1800
    discovery_radius_m: int = 50000
    pricing_batch_size: int = 10
    pricing_batch_delay_s: float = 1.0

    # Upstream calls
    request_timeout_s: float = 10.0
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 1.0

    # Cross-provider matching
    match_threshold: float = 0.7
    match_name_weight: float = 0.5
    match_distance_weight: float = 0.3
    match_rating_weight: float = 0.2
    match_max_distance_m: float = 500.0

    # Metrics
    enable_metrics: bool = False

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

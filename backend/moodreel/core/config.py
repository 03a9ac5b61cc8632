from pydantic_settings import BaseSettings



class Settings(BaseSettings):
    # TMDB catalog
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p/"
    tmdb_language: str = "en-US"
    tmdb_timeout_seconds: float = 10.0
    tmdb_max_retries: int = 4
    poster_placeholder: str = "/placeholder.svg"

    # Profile persistence: "redis" | "memory"
    redis_url: str = "redis://redis:6379/0"
    profile_backend: str = "redis"
    profile_key: str = "default"

    log_level: str = "INFO"

settings = Settings()

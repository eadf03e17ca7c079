from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Agent configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="DEFERWATCH_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "deferwatch-agent"
    environment: str = "production"
    app_group: str = "default"
    log_level: str = "INFO"

    # Collector
    token: str = ""
    api_version: str = "v1.17"
    collector_base_url: str = "https://api.deferpanic.com/v1.17"
    request_timeout_seconds: float = 10.0
    no_post: bool = False
    print_panics: bool = False

    # Request instrumentation
    latency_threshold_ms: int = 500

    # Periodic stats upload (also polls for commands)
    stats_enabled: bool = True
    stats_interval_seconds: float = 60.0

    # Remote capture commands
    profile_duration_seconds: float = 30.0
    profile_sample_interval_seconds: float = 0.01

    @property
    def user_agent(self) -> str:
        return f"deferwatch {self.api_version}"

settings = Settings()

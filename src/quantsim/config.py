from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="QS_",
    )

    # Monte Carlo batches
    simulation_display_paths: int = 10  # full paths retained for inspection
    simulation_histogram_bins: int = 20
    simulation_chunk_size: int = 5000
    simulation_max_workers: int = 1

    # Merton theoretical jump-size distribution
    jump_distribution_samples: int = 1000

    # Logging
    log_dir: str = "logs"
    log_file: str = "quantsim.log"

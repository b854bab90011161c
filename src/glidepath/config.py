from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GP_",
    )

    # Portfolio defaults (KRW)
    initial_capital: float = 10_000_000
    monthly_contribution: float = 500_000

    # Strategy defaults
    strategy: str = "fixed"
    start_ratio: float = 20.0  # cash % (fixed/glide_cash) or leverage x (glide_leverage)
    end_ratio: float = 20.0
    borrow_cost: float = 5.0  # annual %

    # Market model
    duration_years: int = 10
    expected_return: float = 8.0  # annual %
    volatility: float = 15.0  # annual %
    initial_price: float = 100.0

    # Monte Carlo
    simulation_iterations: int = 10000
    simulation_path_count: int = 50
    simulation_histogram_bins: int = 25
    simulation_chunk_size: int = 1000

    # Parallelization
    simulation_max_workers: int = 4

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173"]

    # Cache
    cache_ttl: int = 300  # seconds
    cache_maxsize: int = 256

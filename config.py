from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    dev_mode: bool = False

    app_slug: str = "channel-pricing"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./channel_pricing.db"

    # Divisor tipo IVA aplicado ao custo em canais domésticos
    domestic_vat_divisor: float = 1.1

    # Desconto de taxa: a cada N% de desconto imediato, a comissão cai M pontos
    fee_discount_step_percent: float = 10.0
    fee_discount_points: float = 1.0

    snapshot_history_limit: int = 20

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()

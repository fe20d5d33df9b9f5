from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    webhook_host: str = "0.0.0.0"
    webhook_port: int = 10000

    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_url: str = "https://api.openai.com/v1/"
    openai_prompt: str = "You are a helpful assistant."
    openai_temperature: float = 0.5
    openai_timeout: float = 30.0
    # assistants: thread/run protocol, chat: stateless completions over local history
    openai_mode: str = "assistants"

    avito_token: str = ""
    avito_api_url: str = "https://api.avito.ru"
    avito_timeout: float = 10.0
    avito_send_replies: bool = False

    database_url: str = "sqlite:///database.db"
    history_limit: int = 5

    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 5.0

    run_poll_interval: float = 0.5
    run_max_wait: float = 60.0

    log_level: str = "INFO"

    def missing_credentials(self) -> list[str]:
        """Names of required variables that are not set."""
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.avito_token:
            missing.append("AVITO_TOKEN")
        return missing


settings = Settings()

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Salesforce org
    SFDC_INSTANCE_URL: str | None = None
    SFDC_LOGIN_URL: str = "https://login.salesforce.com"
    SFDC_ACCESS_TOKEN: str | None = None  # 静态 session id / access token

    # OAuth2 username-password flow
    SFDC_CLIENT_ID: str | None = None
    SFDC_CLIENT_SECRET: str | None = None
    SFDC_USERNAME: str | None = None
    SFDC_PASSWORD: str | None = None  # 密码 + security token

    # API 版本: 未配置时新建 bundle 的 ApiVersion 字段使用 SFDC_DEFAULT_API_VERSION，
    # REST 路径使用 SFDC_REST_API_VERSION
    SFDC_API_VERSION: str | None = None
    SFDC_DEFAULT_API_VERSION: str = "32.0"
    SFDC_REST_API_VERSION: str = "58.0"

    SFDC_HTTP_TIMEOUT: float = 30.0
    LIGHTNING_INDEX_TTL: int = 300  # 秒

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def get_log_level(self) -> int:
        """将 LOG_LEVEL 字符串转换为 logging 级别，无效值回退到 INFO"""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


settings = Settings()

"""
FilePath: /lightning_tooling/src/core/auth.py
"""

import logging
from typing import NamedTuple, Optional

import httpx

from src.core.config import settings

logger = logging.getLogger(__name__)

# HTTP 请求超时配置（秒）
HTTP_TIMEOUT = 10.0

OAUTH_TOKEN_PATH = "/services/oauth2/token"


def _mask_token(token: str, visible_chars: int = 4) -> str:
    """对 token 进行脱敏处理，仅显示前几个字符"""
    if not token or len(token) <= visible_chars:
        return "***"
    return f"{token[:visible_chars]}***"


class Session(NamedTuple):
    access_token: str
    instance_url: str


class AuthManager:
    def __init__(self):
        self._session: Optional[Session] = None
        self.login_url = settings.SFDC_LOGIN_URL.rstrip("/")

    def invalidate(self) -> None:
        """清空 session 缓存（例如收到 401 之后）"""
        self._session = None
        logger.debug("Session cache cleared")

    async def get_session(self) -> Optional[Session]:
        """
        Get a valid Salesforce session.
        Returns the statically configured access token if present,
        otherwise logs in with the OAuth2 username-password flow and caches
        the result until invalidate() is called.

        Returns:
            Session(access_token, instance_url), or None if authentication fails.

        Raises:
            None - 所有异常都会被捕获并返回 None
        """
        # 1. 静态 token
        if settings.SFDC_ACCESS_TOKEN:
            if not settings.SFDC_INSTANCE_URL:
                logger.error("SFDC_ACCESS_TOKEN is set but SFDC_INSTANCE_URL is missing")
                return None
            return Session(
                settings.SFDC_ACCESS_TOKEN, settings.SFDC_INSTANCE_URL.rstrip("/")
            )

        # 2. 检查 OAuth 凭证
        if not all(
            (
                settings.SFDC_CLIENT_ID,
                settings.SFDC_CLIENT_SECRET,
                settings.SFDC_USERNAME,
                settings.SFDC_PASSWORD,
            )
        ):
            logger.error(
                "No Salesforce credentials found (access token or OAuth client/user)"
            )
            return None

        # 3. 缓存
        if self._session is not None:
            logger.debug("Using cached session for %s", self._session.instance_url)
            return self._session

        # 4. OAuth2 username-password 登录
        try:
            async with httpx.AsyncClient(
                trust_env=False, timeout=httpx.Timeout(HTTP_TIMEOUT)
            ) as client:
                resp = await client.post(
                    f"{self.login_url}{OAUTH_TOKEN_PATH}",
                    data={
                        "grant_type": "password",
                        "client_id": settings.SFDC_CLIENT_ID,
                        "client_secret": settings.SFDC_CLIENT_SECRET,
                        "username": settings.SFDC_USERNAME,
                        "password": settings.SFDC_PASSWORD,
                    },
                )
                if resp.status_code >= 400:
                    data = resp.json()
                    logger.error(
                        "OAuth login failed: %s (%s)",
                        data.get("error_description", "Unknown error"),
                        data.get("error"),
                    )
                    self.invalidate()
                    return None

                data = resp.json()
                access_token = data.get("access_token")
                instance_url = data.get("instance_url")
                if not access_token or not instance_url:
                    logger.error(
                        "access_token/instance_url missing in OAuth response. Response keys: %s",
                        list(data.keys()),
                    )
                    self.invalidate()
                    return None

                self._session = Session(access_token, instance_url.rstrip("/"))
                logger.info(
                    "Logged in to %s with token %s",
                    self._session.instance_url,
                    _mask_token(access_token),
                )
                return self._session

        except httpx.TimeoutException as e:
            logger.error("OAuth login timed out after %.1f seconds: %s", HTTP_TIMEOUT, e)
            self.invalidate()
            return None
        except httpx.RequestError as e:
            logger.error("OAuth login failed (network error): %s", e)
            self.invalidate()
            return None
        except (ValueError, KeyError) as e:
            logger.error("OAuth response parsing failed: %s", e)
            self.invalidate()
            return None


# Singleton instance
auth_manager = AuthManager()

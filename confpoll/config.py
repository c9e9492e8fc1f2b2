import socket

from loguru import logger
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def detect_local_ip() -> str | None:
    """Best-effort address of this host, as reported to config servers."""
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError as e:
        logger.warning(f"Unable to resolve local ip: {e}")
        return None


class ConfpollSettings(BaseSettings):
    """Long-poll client configuration, read once when the service is built."""

    model_config = SettingsConfigDict(
        env_prefix="CONFPOLL_", env_file=".env", extra="ignore"
    )

    app_id: str = Field(
        "ApolloNoAppIdSet", description="Application id sent with every long poll."
    )
    cluster: str = Field("default", description="Cluster name of this process.")
    data_center: str | None = Field(
        None, description="Data center of this process, sent only when set."
    )
    local_ip: str | None = Field(
        None, description="Address reported to config servers, sent only when set."
    )
    detect_local_ip: bool = Field(
        False, description="Resolve local_ip from the host name when it is not set."
    )
    long_poll_qps: float = Field(
        2.0, gt=0, description="Maximum long-poll requests per second."
    )
    backoff_min_seconds: float = Field(
        1.0, gt=0, description="First retry delay after a failed long poll."
    )
    backoff_max_seconds: float = Field(
        120.0, gt=0, description="Ceiling for the doubling retry delay."
    )
    long_poll_read_timeout: float = Field(
        600.0,
        gt=0,
        description="Read timeout for a long poll; servers answer 304 well before it.",
    )
    rate_limit_acquire_timeout: float = Field(
        5.0, ge=0, description="How long to wait for a rate limiter token."
    )
    rate_limit_miss_sleep: float = Field(
        5.0, ge=0, description="Pause after the rate limiter refuses a token."
    )
    connect_timeout: float = Field(1.0, gt=0, description="HTTP connect timeout.")
    config_service_urls: list[str] | None = Field(
        None, description="Fixed config server base URLs."
    )
    meta_server_url: str | None = Field(
        None, description="Meta server used to discover config servers."
    )
    log_level: str = Field("INFO", description="Log level for configure_logging.")

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "ConfpollSettings":
        if self.backoff_max_seconds < self.backoff_min_seconds:
            raise ValueError(
                "backoff_max_seconds must be greater than or equal to backoff_min_seconds"
            )
        return self

    def resolved_local_ip(self) -> str | None:
        if self.local_ip:
            return self.local_ip
        if self.detect_local_ip:
            return detect_local_ip()
        return None

from pydantic_settings import BaseSettings, SettingsConfigDict


class S3Settings(BaseSettings):
    """Configuration for the S3/MinIO blob store"""

    endpoint: str | None = None  # None uses the AWS default endpoint for the region
    access_key: str = "minioadmin"
    secret_key: str = "minioadmin"
    bucket: str = "objectgate"
    region: str = "us-east-1"
    use_ssl: bool = False
    signature_version: str = "s3v4"
    connect_timeout: float = 10.0
    read_timeout: float = 60.0

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def endpoint_url(self) -> str | None:
        """Endpoint with protocol prepended when it was configured as host:port."""
        if not self.endpoint:
            return None
        if self.endpoint.startswith(("http://", "https://")):
            return self.endpoint
        protocol = "https" if self.use_ssl else "http"
        return f"{protocol}://{self.endpoint}"


class ServerSettings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 12055
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="SERVER_", env_file=".env", extra="ignore")

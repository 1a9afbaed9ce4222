from pydantic import Field, PostgresDsn, computed_field
from .base import EnvConfig


class DatabaseConfig(EnvConfig):
    user: str = Field(validation_alias="POSTGRES_USER", default="user")
    password: str = Field(validation_alias="POSTGRES_PASSWORD", default="password")
    host: str = Field(validation_alias="POSTGRES_HOST", default="localhost")
    port: int = Field(validation_alias="POSTGRES_PORT", default=5432)
    name: str = Field(validation_alias="POSTGRES_DB", default="training_results")

    # Full URL override, e.g. "sqlite+aiosqlite:///results.db" for local runs
    url_override: str | None = Field(
        validation_alias="TRAINING_RESULT_DB_URL", default=None
    )

    @computed_field
    @property
    def URL(self) -> str:
        """Constructs the async SQLAlchemy connection string."""
        if self.url_override:
            return self.url_override
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.user,
                password=self.password,
                host=self.host,
                port=self.port,
                path=self.name,
            )
        )

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Academic rules (0-20 grading scale)
    minimum_attendance_percentage: float = Field(75.0, alias="MINIMUM_ATTENDANCE_PERCENTAGE")
    passing_grade: float = Field(10.0, alias="PASSING_GRADE")
    grade_scale_max: float = Field(20.0, alias="GRADE_SCALE_MAX")

    certificate_verification_base_url: str = Field(
        "https://academico.example.com/verificar-certificado",
        alias="CERTIFICATE_VERIFICATION_BASE_URL",
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    debug: bool = Field(False, alias="DEBUG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()

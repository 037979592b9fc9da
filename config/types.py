from typing import Optional
from pydantic import BaseModel, Field, field_validator

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
STORE_BACKENDS = ("memory", "filesystem")


class WorkflowSettings(BaseModel):
    """Model representing validated workflow engine settings"""

    workflow_definitions_dir: Optional[str] = None
    execution_store_backend: str = "memory"
    execution_store_path: str = ".workflow_executions"
    step_timeout_seconds: float = Field(default=300.0, gt=0)
    persist_timeout_seconds: float = Field(default=30.0, gt=0)
    execution_retention_days: int = Field(default=7, ge=0)
    default_list_limit: int = Field(default=10, gt=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("execution_store_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.lower()
        if value not in STORE_BACKENDS:
            raise ValueError(
                f"execution_store_backend must be one of: {', '.join(STORE_BACKENDS)}"
            )
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {', '.join(LOG_LEVELS)}")
        return value

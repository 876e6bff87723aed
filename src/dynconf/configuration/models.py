"""
Data models for configuring the engine itself.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator

from ..flags.models import FlagDefinition


class LoggingConfiguration(BaseModel):
    """Logging setup for the structured dynconf logger."""
    level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    format: str = Field(default="json", pattern="^(json|text)$")
    output: str = Field(default="console", pattern="^(console|file|both)$")
    file_path: Optional[str] = None

    @model_validator(mode='after')
    def validate_file_path(self):
        if self.output in ('file', 'both') and not self.file_path:
            raise ValueError("file_path is required when output is 'file' or 'both'")
        return self


class RefreshConfiguration(BaseModel):
    """Auto-refresh settings."""
    enabled: bool = False
    interval_seconds: float = Field(default=30.0, gt=0)


class EngineConfiguration(BaseModel):
    """
    Top-level engine settings, typically read from a YAML file:

        logging:
          level: DEBUG
          format: text
        refresh:
          enabled: true
          interval_seconds: 15
        flags:
          new-checkout:
            percentage: 25
          button-color:
            variants: {control: 50, red: 25, blue: 25}
    """
    logging: LoggingConfiguration = Field(default_factory=LoggingConfiguration)
    refresh: RefreshConfiguration = Field(default_factory=RefreshConfiguration)
    flags: Dict[str, FlagDefinition] = Field(default_factory=dict)

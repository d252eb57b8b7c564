"""
Export Configuration

Settings shared by the query engine, templates and renderers. Values can be
overridden from the environment (or a .env file) with APPROVAL_EXPORT_<FIELD>.
"""

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "APPROVAL_EXPORT_"


class ExportConfig(BaseModel):
    """Configuration for export rendering"""
    filename_prefix: str = Field(
        default="approvals",
        description="Fixed prefix for every export filename"
    )
    generated_by: str = Field(
        default="ApprovalSystem Export Module",
        description="Generator tag written into export metadata"
    )
    workbook_creator: str = Field(
        default="Approval System",
        description="Creator property of generated workbooks"
    )
    csv_delimiter: str = Field(
        default=",",
        min_length=1, max_length=1,
        description="Delimiter for the CSV renderer"
    )
    json_indent: int = Field(ge=0, le=8, default=2, description="JSON indentation")
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="strftime pattern for dates in tabular exports"
    )
    short_date_format: str = Field(
        default="%Y-%m-%d",
        description="strftime pattern for dates in the document table"
    )
    max_column_width: int = Field(
        ge=10, le=255, default=50,
        description="Cap for auto-sized spreadsheet columns"
    )
    pdf_row_limit: int = Field(
        ge=1, le=15, default=15,
        description="Number of requests listed in the document table"
    )
    pdf_id_cap: int = Field(ge=1, default=10, description="Characters kept from request IDs in the document table")
    pdf_text_cap: int = Field(ge=1, default=30, description="Characters kept from subjects in the document table")
    pdf_page_height: float = Field(
        gt=20, default=280,
        description="Vertical cursor (mm from top) past which a new page starts"
    )
    output_dir: Path = Field(
        default=Path("exports"),
        description="Directory used by save_to_file when none is given"
    )

    @field_validator('filename_prefix')
    @classmethod
    def validate_filename_prefix(cls, v):
        if not v or any(sep in v for sep in ("/", "\\")):
            raise ValueError("filename_prefix must be a non-empty name without path separators")
        return v

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "ExportConfig":
        """
        Build a config from APPROVAL_EXPORT_* environment variables.

        Args:
            env_file: Optional .env file to load first (existing variables win)

        Returns:
            ExportConfig with overrides applied
        """
        load_dotenv(dotenv_path=env_file)

        overrides = {}
        for name in cls.model_fields:
            value = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value

        return cls(**overrides)

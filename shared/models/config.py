from pydantic import BaseModel, Field, model_validator

from shared.helper.HelperConfig import HelperConfig


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required for a env setting.

    Attributes:
        env_key (str): The key/name of the environment variable to read.
        val_type (str): The expected type of the value. Supported types are "string", "number", "bool", and "list".
        default (str | int | float | bool | list | None): Default value if the variable is not set. If None, the variable is required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class PipelineSettings(BaseModel):
    """Tunables of the ingestion and retrieval pipeline.

    Every field maps onto a ``KB_<FIELD>`` environment variable, see
    :meth:`from_config`.
    """

    # chunking
    max_chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)

    # retrieval
    max_context_tokens: int = Field(default=6000, gt=0)
    similarity_threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    result_limit: int = Field(default=8, gt=0)

    # extraction
    max_pdf_pages: int = Field(default=50, ge=1)
    max_ocr_pages: int = Field(default=10, ge=0)
    pdf_min_page_chars: int = Field(default=50, ge=0)
    pdf_line_tolerance: float = Field(default=10.0, ge=0.0)
    pdf_ocr_scale: float = Field(default=2.0, gt=0.0)
    sheet_rows_per_block: int = Field(default=20, gt=0)
    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    ocr_timeout: float = Field(default=60.0, gt=0.0)

    # indexing
    embed_batch_size: int = Field(default=5, gt=0)
    upsert_batch_size: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def _check_overlap(self) -> "PipelineSettings":
        if self.chunk_overlap >= self.max_chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be smaller than max_chunk_size ({self.max_chunk_size})."
            )
        return self

    @classmethod
    def from_config(cls, helper_config: HelperConfig) -> "PipelineSettings":
        """Build the settings from ``KB_*`` environment variables, falling back to the field defaults.

        Args:
            helper_config (HelperConfig): The configuration helper to read from.

        Returns:
            PipelineSettings: The validated settings.

        Raises:
            ValueError: If a variable is not numeric or the combination is invalid.
        """
        values = {}
        for name, field in cls.model_fields.items():
            values[name] = helper_config.get_number_val(f"KB_{name.upper()}", default=field.default)
        return cls(**values)

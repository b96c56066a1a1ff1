from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class DiscoveryMode(str, Enum):
    STRICT = "strict"
    TRIAGE = "triage"


class Ordering(str, Enum):
    BARRIER = "barrier"
    SEQUENTIAL = "sequential"


class ArchiveMode(str, Enum):
    MOVE = "move"
    COPY = "copy"


class GeneralConfig(BaseModel):
    extensions: List[str] = Field(default_factory=lambda: [".mp4"])
    log_path: Optional[str] = None
    debug: bool = False

    @field_validator("extensions")
    @classmethod
    def validate_extensions(cls, v: List[str]) -> List[str]:
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("At least one source extension is required")
        return normalized


class EncoderConfig(BaseModel):
    cli_path: str = "HandBrakeCLI"
    preset: str = "Production Standard"
    encoder: Optional[str] = None
    frame_rate_control: str = "cfr"

    @field_validator("frame_rate_control")
    @classmethod
    def validate_frame_rate_control(cls, v: str) -> str:
        allowed = {"cfr", "vfr", "pfr"}
        if v not in allowed:
            raise ValueError(f"Unsupported frame_rate_control: {v}. Use one of {sorted(allowed)}")
        return v


class DiscoveryConfig(BaseModel):
    mode: DiscoveryMode = DiscoveryMode.STRICT


class PipelineConfig(BaseModel):
    ordering: Ordering = Ordering.BARRIER
    encode_permits: int = 1

    @field_validator("encode_permits")
    @classmethod
    def validate_encode_permits(cls, v: int) -> int:
        if v != 1:
            raise ValueError("encode_permits must be 1 (the encoder does not support concurrent runs)")
        return v


class ArchiveConfig(BaseModel):
    mode: ArchiveMode = ArchiveMode.MOVE


class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    archive: ArchiveConfig = Field(default_factory=ArchiveConfig)

"""Pydantic models for render settings.

Every model is frozen: a RenderSettings instance is a read-only snapshot that
is resolved once and threaded through each render.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

GPU_VENDORS = ("nvidia", "amd", "intel")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, allow_inf_nan=False, extra="forbid")


class EncodingConfig(_Frozen):
    """Output encoding settings."""

    quality: int = Field(
        default=20, ge=0, le=51, description="Encoder quality (CRF / QP value, lower = better)"
    )
    container: str = Field(default="mp4", min_length=1, description="Output container extension")
    detailed_filename: bool = Field(
        default=False, description="Embed interpolation/blending parameters in the output name"
    )


class TimescaleConfig(_Frozen):
    """Playback speed factors applied before and after blurring."""

    input: float = Field(default=1.0, gt=0.0, description="Input timescale (changes pitch)")
    output: float = Field(default=1.0, gt=0.0, description="Output timescale")
    adjust_audio_pitch: bool = Field(
        default=False, description="Let the output timescale change audio pitch"
    )


class InterpolationConfig(_Frozen):
    """Frame interpolation settings."""

    enabled: bool = Field(default=True, description="Interpolate frames before blending")
    fps: int = Field(default=960, gt=0, description="Interpolated frame rate")


class BlendingConfig(_Frozen):
    """Frame blending settings."""

    enabled: bool = Field(default=True, description="Blend frames down to the output rate")
    output_fps: int = Field(default=60, gt=0, description="Frame rate after blending")
    amount: float = Field(default=1.0, ge=0.0, description="Blur amount")


class AdvancedEncodingConfig(_Frozen):
    """Hardware encoder selection and custom ffmpeg overrides."""

    gpu: bool = Field(default=False, description="Use a hardware encoder")
    gpu_type: str = Field(default="nvidia", description="GPU vendor: nvidia, amd or intel")
    custom_ffmpeg_filters: Optional[str] = Field(
        default=None, description="Raw ffmpeg arguments replacing the derived encoder flags"
    )

    @model_validator(mode="after")
    def known_gpu_vendor(self) -> "AdvancedEncodingConfig":
        """Reject unknown vendors when hardware encoding is requested."""
        if self.gpu and self.gpu_type.lower() not in GPU_VENDORS:
            raise ValueError(
                f"Unknown gpu_type {self.gpu_type!r} (expected one of: {', '.join(GPU_VENDORS)})"
            )
        return self


class AdvancedInterpolationConfig(_Frozen):
    program: str = Field(default="svp", min_length=1, description="Interpolation program")


class AdvancedConfig(_Frozen):
    encoding: AdvancedEncodingConfig = Field(default_factory=AdvancedEncodingConfig)
    interpolation: AdvancedInterpolationConfig = Field(default_factory=AdvancedInterpolationConfig)


class RenderSettings(_Frozen):
    """Complete render configuration with validation."""

    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    timescale: TimescaleConfig = Field(default_factory=TimescaleConfig)
    interpolation: InterpolationConfig = Field(default_factory=InterpolationConfig)
    blending: BlendingConfig = Field(default_factory=BlendingConfig)
    advanced: AdvancedConfig = Field(default_factory=AdvancedConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "RenderSettings":
        """Create settings from nested dict (YAML)."""
        return cls(**data)

    def merge_cli_overrides(self, cli_args: dict) -> "RenderSettings":
        """Apply CLI overrides and return a new settings instance."""
        config_dict = self.model_dump()

        if cli_args.get("quality") is not None:
            config_dict["encoding"]["quality"] = cli_args["quality"]
        if cli_args.get("container") is not None:
            config_dict["encoding"]["container"] = cli_args["container"]
        if cli_args.get("detailed_filename") is not None:
            config_dict["encoding"]["detailed_filename"] = cli_args["detailed_filename"]
        if cli_args.get("gpu") is not None:
            config_dict["advanced"]["encoding"]["gpu"] = cli_args["gpu"]
        if cli_args.get("gpu_type") is not None:
            config_dict["advanced"]["encoding"]["gpu_type"] = cli_args["gpu_type"]

        return RenderSettings.from_dict(config_dict)

"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from ..errors import DataQualityError
from ..utils.time import timeframe_to_seconds, to_datetime

MARKER_POSITIONS = ("aboveBar", "belowBar", "inBar")
MARKER_SHAPES = ("circle", "square", "arrowUp", "arrowDown")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_cache_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate range cache parameters."""
        errors = []

        if "buffer_multiplier" in params:
            value = params["buffer_multiplier"]
            if not _is_number(value) or value < 1:
                errors.append(ValidationError(
                    field="buffer_multiplier",
                    message="Must be a number greater than or equal to 1",
                    value=value
                ))

        if "max_cache_span" in params:
            value = params["max_cache_span"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="max_cache_span",
                    message="Must be a non-negative number of seconds",
                    value=value
                ))

        if "cleanup_interval" in params:
            value = params["cleanup_interval"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="cleanup_interval",
                    message="Must be a non-negative number of seconds",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_render_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate render scheduling parameters."""
        errors = []

        if "frames_per_second" in params:
            value = params["frames_per_second"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="frames_per_second",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_phase_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate lunar phase model parameters."""
        errors = []

        if "synodic_month" in params:
            value = params["synodic_month"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="synodic_month",
                    message="Must be a positive number of days",
                    value=value
                ))

        if "reference_new_moon" in params:
            value = params["reference_new_moon"]
            try:
                to_datetime(value)
            except DataQualityError:
                errors.append(ValidationError(
                    field="reference_new_moon",
                    message="Must be an ISO8601 instant",
                    value=value
                ))

        if "step_days" in params:
            value = params["step_days"]
            if not _is_number(value) or not 0 < value <= 1:
                errors.append(ValidationError(
                    field="step_days",
                    message="Must be a number of days in (0, 1]",
                    value=value
                ))

        if "default_count" in params:
            value = params["default_count"]
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                errors.append(ValidationError(
                    field="default_count",
                    message="Must be a positive integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_lunar_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate lunar overlay parameters."""
        errors = []

        for flag in ("show_full_moon", "show_new_moon", "show_quarter_moon", "show_labels"):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=flag,
                    message="Must be a boolean",
                    value=params[flag]
                ))

        if "marker_size" in params:
            value = params["marker_size"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="marker_size",
                    message="Must be a positive number",
                    value=value
                ))

        if "short_timeframe_threshold" in params:
            value = params["short_timeframe_threshold"]
            try:
                timeframe_to_seconds(value)
            except (TypeError, ValueError):
                errors.append(ValidationError(
                    field="short_timeframe_threshold",
                    message="Must be a timeframe label such as 4H or 1D",
                    value=value
                ))

        for subtype, style in (params.get("styles") or {}).items():
            if not isinstance(style, dict):
                errors.append(ValidationError(
                    field=f"styles.{subtype}",
                    message="Must be a mapping",
                    value=style
                ))
                continue
            if "position" in style and style["position"] not in MARKER_POSITIONS:
                errors.append(ValidationError(
                    field=f"styles.{subtype}.position",
                    message=f"Must be one of {', '.join(MARKER_POSITIONS)}",
                    value=style["position"]
                ))
            if "shape" in style and style["shape"] not in MARKER_SHAPES:
                errors.append(ValidationError(
                    field=f"styles.{subtype}.shape",
                    message=f"Must be one of {', '.join(MARKER_SHAPES)}",
                    value=style["shape"]
                ))

        return errors

    @staticmethod
    def validate_economic_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate economic calendar overlay parameters."""
        errors = []

        for color in ("important_color", "regular_color"):
            if color in params and not isinstance(params[color], str):
                errors.append(ValidationError(
                    field=color,
                    message="Must be a color string",
                    value=params[color]
                ))

        if "position" in params and params["position"] not in MARKER_POSITIONS:
            errors.append(ValidationError(
                field="position",
                message=f"Must be one of {', '.join(MARKER_POSITIONS)}",
                value=params["position"]
            ))

        if "shape" in params and params["shape"] not in MARKER_SHAPES:
            errors.append(ValidationError(
                field="shape",
                message=f"Must be one of {', '.join(MARKER_SHAPES)}",
                value=params["shape"]
            ))

        if "marker_size" in params:
            value = params["marker_size"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="marker_size",
                    message="Must be a positive number",
                    value=value
                ))

        if "important_only" in params and not isinstance(params["important_only"], bool):
            errors.append(ValidationError(
                field="important_only",
                message="Must be a boolean",
                value=params["important_only"]
            ))

        return errors

    @staticmethod
    def validate_chart_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate chart host parameters."""
        errors = []

        if "initial_timeframe" in params:
            value = params["initial_timeframe"]
            try:
                timeframe_to_seconds(value)
            except (TypeError, ValueError):
                errors.append(ValidationError(
                    field="initial_timeframe",
                    message="Must be a timeframe label such as 4H or 1D",
                    value=value
                ))

        if "load_more_threshold" in params:
            value = params["load_more_threshold"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ValidationError(
                    field="load_more_threshold",
                    message="Must be a non-negative integer",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "cache" in config:
            errors.extend(ConfigValidator.validate_cache_params(config["cache"]))

        if "render" in config:
            errors.extend(ConfigValidator.validate_render_params(config["render"]))

        if "phases" in config:
            errors.extend(ConfigValidator.validate_phase_params(config["phases"]))

        if "lunar" in config:
            errors.extend(ConfigValidator.validate_lunar_params(config["lunar"]))

        if "economic" in config:
            errors.extend(ConfigValidator.validate_economic_params(config["economic"]))

        if "chart" in config:
            errors.extend(ConfigValidator.validate_chart_params(config["chart"]))

        return errors

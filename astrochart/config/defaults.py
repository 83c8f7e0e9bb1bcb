"""Default configuration parameters for the event overlay core."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CacheParams:
    """Range cache parameters."""
    buffer_multiplier: float = 3.0                   # Viewport inflation factor
    max_cache_span: int = 30 * 24 * 60 * 60          # Seconds kept around the current range
    cleanup_interval: float = 5 * 60                 # Seconds between eviction passes


@dataclass(frozen=True)
class RenderParams:
    """Batched render scheduling parameters."""
    frames_per_second: int = 60


@dataclass(frozen=True)
class PhaseParams:
    """Lunar phase model parameters."""
    synodic_month: float = 29.53058867               # Days between identical phases
    reference_new_moon: str = "2000-01-06T18:14:00Z"
    step_days: float = 1.0                           # Significant phase detector step
    default_count: int = 4


@dataclass(frozen=True)
class MarkerStyle:
    """Marker appearance for one event subtype."""
    color: str
    position: str = "inBar"
    shape: str = "circle"
    label: str = ""


def _default_lunar_styles() -> dict[str, MarkerStyle]:
    return {
        "full_moon": MarkerStyle(color="#FFD700", position="aboveBar", label="Full Moon"),
        "new_moon": MarkerStyle(color="#4A5568", position="belowBar", label="New Moon"),
        "first_quarter": MarkerStyle(color="#C0C0C0", label="First Quarter"),
        "last_quarter": MarkerStyle(color="#C0C0C0", label="Last Quarter"),
    }


@dataclass(frozen=True)
class LunarPluginParams:
    """Lunar overlay parameters."""
    show_full_moon: bool = True
    show_new_moon: bool = True
    show_quarter_moon: bool = True
    show_labels: bool = True
    marker_size: int = 2
    short_timeframe_threshold: str = "1D"            # Hide markers below this timeframe
    styles: dict[str, MarkerStyle] = field(default_factory=_default_lunar_styles)


@dataclass(frozen=True)
class EconomicPluginParams:
    """Economic calendar overlay parameters."""
    important_color: str = "#E53E3E"
    regular_color: str = "#3182CE"
    position: str = "aboveBar"
    shape: str = "square"
    marker_size: int = 1
    important_only: bool = False


@dataclass(frozen=True)
class ChartParams:
    """Chart host interaction parameters."""
    initial_timeframe: str = "1D"
    load_more_threshold: int = 10                    # Bars from either edge before loading more


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    cache: CacheParams
    render: RenderParams
    phases: PhaseParams
    lunar: LunarPluginParams
    economic: EconomicPluginParams
    chart: ChartParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        cache=CacheParams(),
        render=RenderParams(),
        phases=PhaseParams(),
        lunar=LunarPluginParams(),
        economic=EconomicPluginParams(),
        chart=ChartParams(),
    )

from dataclasses import dataclass


@dataclass
class AppConfig:
    # --- Debugging ---
    debug: bool = False  # Show the HUD overlay

    # --- Logging ---
    log_level: str = "INFO"  # Minimum log level to output
    log_file: str | None = None  # Redirect logs to a file instead of the console

    # --- Window ---
    width: int = 1920  # Reference screen width
    height: int = 1080  # Reference screen height (also sizes the statistics disk)
    fullscreen: bool = False  # Open on the primary monitor

    # --- Images ---
    display_image: str | None = None  # Image shown to the operator
    height_image: str | None = None  # Paired height map, same pixel size
    history_log: str = "haptics_log.csv"  # Past sessions used for calibration
    shape_dir: str = "shapes"  # Directory with <cursor_shape>.csv width profiles

    # --- Shadow rendering (defaults when no calibration applies) ---
    transparency: float = 0.80  # Peak shadow opacity
    delta_pixel: float = 5.0  # Displacement strength, squared / 255 per height unit
    cd_threshold: float = 10.0  # Height step that triggers resistance / acceleration
    cell_size: float = 2.0  # Raster cell edge in pixels
    image_blend: float = 0.0  # Mix of the height map over the display image
    cursor_shape: str = "penShape"  # Shape profile ('penShape' or 'cursor')

    # --- Slider ranges (clamp model predictions and live changes) ---
    transparency_max: float = 1.0
    delta_pixel_max: float = 30.0
    cd_threshold_max: float = 100.0

    # --- Pen dynamics ---
    smoothing: float = 0.9  # Pull toward the newest raw reading per event
    look_ahead: float = 3.0  # Pixels sampled ahead along the movement direction
    resistance_ratio: float = -0.3  # Anchor gain while resisting
    accelerate_ratio: float = 2.0  # Anchor gain while accelerating
    hold_time: float = 0.3  # Seconds the gain is applied after a transition
    release_time: float = 0.4  # Seconds until the anchor is back on the pen
    frame_interval: float = 1.0 / 60.0  # Nominal step used while easing back

    # --- Frame budget ---
    frame_budget: float = 1.0 / 60.0  # Shadow passes slower than this drop frames

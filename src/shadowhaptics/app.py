from __future__ import annotations
import argparse
import shutil
import sys
import time

import glfw, moderngl

from .config import AppConfig
from .display import ShadowDisplay
from .errors import ImageDecodeError
from .hud import HudOverlay, session_lines
from .logging import get_logger, session_name, setup_logging
from .profiler import get_profiler
from .session import Session
from .shapes import CursorShape

TILT_STEP = 0.05
BLEND_STEPS = (0.0, 0.5, 1.0)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Pen shadow haptics")
    p.add_argument("--display", type=str, default=None, help="Display image path.")
    p.add_argument(
        "--height-map",
        type=str,
        default=None,
        help="Height map image path; must match the display image size.",
    )
    p.add_argument(
        "--history",
        type=str,
        default=None,
        help="Haptics log CSV used to calibrate parameters. Default: from config.",
    )
    p.add_argument(
        "--shape-dir",
        type=str,
        default=None,
        help="Directory with <shape>.csv pen width profiles. Default: from config.",
    )
    p.add_argument(
        "--cursor-shape",
        type=str,
        choices=[s.value for s in CursorShape],
        default=None,
        help="Shadow silhouette. Default: from config.",
    )
    p.add_argument(
        "--fullscreen",
        action="store_true",
        help="Open in fullscreen on the primary monitor.",
    )
    p.add_argument("--debug", action="store_true", help="Show the HUD overlay.")
    p.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log to a file instead of the console.",
    )
    p.add_argument("--log-level", type=str, default=None, help="Default: INFO.")
    return p.parse_args(argv)


def build_config(args) -> AppConfig:
    cfg = AppConfig()
    if args.display is not None:
        cfg.display_image = args.display
    if args.height_map is not None:
        cfg.height_image = args.height_map
    if args.history is not None:
        cfg.history_log = args.history
    if args.shape_dir is not None:
        cfg.shape_dir = args.shape_dir
    if args.cursor_shape is not None:
        cfg.cursor_shape = args.cursor_shape
    if args.fullscreen:
        cfg.fullscreen = True
    if args.debug:
        cfg.debug = True
    if args.log_file is not None:
        cfg.log_file = args.log_file
    if args.log_level is not None:
        cfg.log_level = args.log_level
    return cfg


class KeyEdges:
    """Reports a key once per press while polling every frame."""

    def __init__(self):
        self.down = set()

    def pressed(self, win, key) -> bool:
        is_down = glfw.get_key(win, key) == glfw.PRESS
        was_down = key in self.down
        if is_down:
            self.down.add(key)
        else:
            self.down.discard(key)
        return is_down and not was_down


def window_to_image(session: Session, cfg: AppConfig, x: float, y: float):
    field = session.field
    if field is None or cfg.width <= 0 or cfg.height <= 0:
        return x, y
    return x * field.width / cfg.width, y * field.height / cfg.height


def handle_keys(win, keys: KeyEdges, session: Session, cfg: AppConfig, tilt: list):
    p = session.params
    if keys.pressed(win, glfw.KEY_P):
        cfg.debug = not cfg.debug
    if keys.pressed(win, glfw.KEY_C):
        session.set_cursor_shape(session.cursor_shape.next())
    if keys.pressed(win, glfw.KEY_B):
        i = min(range(len(BLEND_STEPS)), key=lambda k: abs(BLEND_STEPS[k] - session.image_blend))
        session.image_blend = BLEND_STEPS[(i + 1) % len(BLEND_STEPS)]
    if keys.pressed(win, glfw.KEY_LEFT_BRACKET):
        p.adjust(delta_pixel=p.delta_pixel - 1.0)
    if keys.pressed(win, glfw.KEY_RIGHT_BRACKET):
        p.adjust(delta_pixel=p.delta_pixel + 1.0)
    if keys.pressed(win, glfw.KEY_MINUS):
        p.adjust(cd_threshold=p.cd_threshold - 1.0)
    if keys.pressed(win, glfw.KEY_EQUAL):
        p.adjust(cd_threshold=p.cd_threshold + 1.0)
    if keys.pressed(win, glfw.KEY_COMMA):
        p.adjust(transparency=p.transparency - 0.05)
    if keys.pressed(win, glfw.KEY_PERIOD):
        p.adjust(transparency=p.transparency + 0.05)
    # GLFW has no stylus tilt; arrows steer a synthetic one
    if keys.pressed(win, glfw.KEY_LEFT):
        tilt[0] -= TILT_STEP
    if keys.pressed(win, glfw.KEY_RIGHT):
        tilt[0] += TILT_STEP
    if keys.pressed(win, glfw.KEY_UP):
        tilt[1] -= TILT_STEP
    if keys.pressed(win, glfw.KEY_DOWN):
        tilt[1] += TILT_STEP


def main(argv=None):
    args = parse_args(argv)
    cfg = build_config(args)

    # --- logging ---
    setup_logging(cfg.log_level, cfg.log_file, session_name(cfg.display_image))
    logger = get_logger(__name__)

    # --- window / context ---
    if not glfw.init():
        raise RuntimeError("GLFW init failed")
    glfw.window_hint(glfw.CONTEXT_VERSION_MAJOR, 3)
    glfw.window_hint(glfw.CONTEXT_VERSION_MINOR, 3)
    glfw.window_hint(glfw.OPENGL_PROFILE, glfw.OPENGL_CORE_PROFILE)
    glfw.window_hint(glfw.OPENGL_FORWARD_COMPAT, True)

    monitor = None
    if cfg.fullscreen:
        monitor = glfw.get_primary_monitor()
        mode = glfw.get_video_mode(monitor)
        cfg.width, cfg.height = mode.size.width, mode.size.height

    win = glfw.create_window(cfg.width, cfg.height, "Pen Shadow", monitor, None)
    glfw.make_context_current(win)

    def _linux_gl_hint():
        if sys.platform.startswith("linux") and shutil.which("glxinfo") is None:
            return (
                "Linux OpenGL loaders not found.\n"
                "Install the dev libraries:\n"
                "  sudo apt install -y libgl1-mesa-dev libegl1-mesa-dev libglvnd-dev mesa-utils\n"
            )

    try:
        ctx = moderngl.create_context()
    except Exception:
        logger.error(_linux_gl_hint() or "Failed to create ModernGL context.")
        raise

    display = ShadowDisplay(ctx, cfg)
    session = Session(cfg)
    if cfg.display_image and cfg.height_image:
        session.load(cfg.display_image, cfg.height_image)
    else:
        logger.warning("No --display/--height-map given; nothing to shade.")

    tilt = [0.35, 0.35]
    shadow_dirty = False

    def on_cursor(_win, x, y):
        nonlocal shadow_dirty
        session.on_pointer(window_to_image(session, cfg, x, y), tuple(tilt))
        shadow_dirty = True

    glfw.set_cursor_pos_callback(win, on_cursor)

    hud = None
    keys = KeyEdges()
    dropped = False
    prev_t = time.time()
    frame_count = 0
    log_interval = 1.0  # seconds
    time_since_log = 0.0

    logger.info(
        "P HUD  C cursor shape  B blend  [ ] delta  - = threshold  , . transparency  arrows tilt  ESC quit"
    )

    profiler = get_profiler()
    try:
        while not glfw.window_should_close(win):
            with profiler.record("frame"):
                # --- Events (pointer callbacks run in here, in arrival order) ---
                glfw.poll_events()
                if glfw.get_key(win, glfw.KEY_ESCAPE) == glfw.PRESS:
                    break
                before = (session.params.transparency, session.params.delta_pixel, session.cursor_shape)
                handle_keys(win, keys, session, cfg, tilt)
                after = (session.params.transparency, session.params.delta_pixel, session.cursor_shape)
                shadow_dirty = shadow_dirty or before != after

                now = time.time()
                actual_dt = now - prev_t
                prev_t = now

                # --- Background load handoff ---
                try:
                    if session.poll() and not display.ready:
                        display.upload_images(session.images.display, session.images.height_image)
                        shadow_dirty = True
                except (ImageDecodeError, ValueError) as e:
                    logger.error(f"Image load failed: {e}")

                # --- Shadow pass; over budget, every other tick is dropped ---
                if session.ready and shadow_dirty:
                    if profiler.over_budget("shadow", cfg.frame_budget) and not dropped:
                        dropped = True
                        logger.debug(
                            f"Shadow pass over budget "
                            f"(last {profiler.last('shadow') * 1000:.1f}ms), dropping a frame"
                        )
                    else:
                        dropped = False
                        with profiler.record("shadow"):
                            alpha = session.rasterize(session.render())
                            display.upload_shadow(alpha)
                        shadow_dirty = False

                # --- Render to screen ---
                with profiler.record("render"):
                    ctx.screen.use()
                    display.render(session.image_blend)
                    if cfg.debug:
                        if hud is None:
                            hud = HudOverlay(ctx, cfg)
                        lines = [f"FPS: {1.0 / max(actual_dt, 1e-6):.1f}"]
                        lines += session_lines(session, profiler.get_timings())
                        hud.render(lines, 10, cfg.height - 20)

            # --- Performance logging ---
            frame_count += 1
            time_since_log += actual_dt
            if time_since_log >= log_interval:
                fps = frame_count / time_since_log
                logger.info(f"FPS: {fps:.2f} | state: {session.state.name}")
                profiler.log_stats()
                frame_count = 0
                time_since_log = 0.0

            glfw.swap_buffers(win)

    finally:
        session.close()
        glfw.terminate()

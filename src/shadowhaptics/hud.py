from __future__ import annotations
import os
import freetype
import moderngl
import numpy as np

from . import shaders as S
from .config import AppConfig
from .logging import get_logger

FONT_PATHS = [
    "fonts/FiraCode-SemiBold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/Library/Fonts/Menlo.ttc",
]
LINE_HEIGHT = 18


def session_lines(session, timings: dict[str, float] | None = None) -> list[str]:
    """Text shown in the HUD: image indices, bound parameters, shadow state."""
    stats = session.stats
    p = session.params
    lines = [
        f"Roughness Index: {stats.roughness_index:.3f}",
        f"Brightness Index: {stats.brightness_index:.3f}",
        "--------------------",
        f"Shadow Transparency: {p.transparency:.2f}",
        f"Delta Pixel (Strength): {p.delta_pixel:.1f}",
        f"CD Threshold: {p.cd_threshold:.1f}",
        f"Image Blend: {session.image_blend:.1f}",
        f"Cursor Shape: {session.cursor_shape.label}",
        f"State: {session.state.name}",
    ]
    if not session.ready:
        lines.append("Loading images...")
    if timings:
        lines.append("--------------------")
        for k, v in sorted(timings.items()):
            lines.append(f"{k}: {v*1000:.2f}ms")
    return lines


class HudOverlay:
    """FreeType glyph atlas drawn as textured quads over the shadow view."""

    def __init__(self, ctx: moderngl.Context, cfg: AppConfig):
        self.ctx = ctx
        self.cfg = cfg
        self.logger = get_logger(__name__)
        self.prog = self.ctx.program(vertex_shader=S.VS_HUD, fragment_shader=S.FS_HUD)
        self.sampler = self.ctx.sampler(
            filter=(moderngl.LINEAR, moderngl.LINEAR),
            repeat_x=False,
            repeat_y=False,
        )

        self.max_chars = 1024
        # 6 vertices per glyph, (x, y, u, v) each
        self.vertices = np.zeros((self.max_chars * 6, 4), dtype="f4")
        self.vbo = self.ctx.buffer(self.vertices.tobytes(), dynamic=True)
        self.vao = self.ctx.vertex_array(
            self.prog, [(self.vbo, "2f 2f", "in_vert", "in_uv")]
        )
        self.char_count = 0
        self.glyphs = {}
        self.atlas = None
        self.font_loaded = False

        font_path = self._find_font_path()
        if font_path is None:
            self.logger.warning("No font found; the HUD will stay empty.")
            return
        try:
            self._load_font(font_path)
        except (freetype.FT_Exception, OSError) as e:
            self.logger.warning(f"Failed to load font '{font_path}': {e}")
            return
        self.font_loaded = self.atlas is not None
        if self.font_loaded:
            self.logger.info(f"HUD font: {font_path}")

    def _find_font_path(self) -> str | None:
        for path in FONT_PATHS:
            if os.path.exists(path):
                return path
        return None

    def _load_font(self, font_path: str, size: int = 16):
        face = freetype.Face(font_path)
        face.set_pixel_sizes(0, size)

        bitmaps = {}
        atlas_w, atlas_h = 0, 0
        for code in range(32, 127):
            face.load_char(chr(code), freetype.FT_LOAD_RENDER)
            g = face.glyph
            w, h = g.bitmap.width, g.bitmap.rows
            buf = np.array(g.bitmap.buffer, dtype="u1")
            bitmaps[chr(code)] = (
                buf.reshape((h, w)) if w and h else None,
                (g.bitmap_left, g.bitmap_top),
                g.advance.x >> 6,
            )
            atlas_w += w
            atlas_h = max(atlas_h, h)

        if not atlas_w or not atlas_h:
            self.logger.warning("Glyph atlas is empty.")
            return

        data = np.zeros((atlas_h, atlas_w), dtype="u1")
        x = 0
        for ch, (bmp, bearing, advance) in bitmaps.items():
            h, w = bmp.shape if bmp is not None else (0, 0)
            if bmp is not None:
                data[0:h, x : x + w] = bmp
            self.glyphs[ch] = {
                "size": (w, h),
                "bearing": bearing,
                "advance": advance,
                "u": x / atlas_w,
            }
            x += w

        self.ctx.pack_alignment = 1
        self.atlas = self.ctx.texture((atlas_w, atlas_h), 1, data.tobytes(), dtype="f1")
        self.ctx.pack_alignment = 4
        self.sampler.use(location=0)

    def _add_glyph(self, ch: str, x: float, y: float):
        g = self.glyphs[ch]
        w, h = g["size"]
        xpos = x + g["bearing"][0]
        ypos = y - (h - g["bearing"][1])

        # pixels -> NDC
        px = (xpos / self.cfg.width) * 2.0 - 1.0
        py = (ypos / self.cfg.height) * 2.0 - 1.0
        pw = (w / self.cfg.width) * 2.0
        ph = (h / self.cfg.height) * 2.0
        u0 = g["u"]
        u1 = u0 + w / self.atlas.width
        v1 = h / self.atlas.height

        i = self.char_count * 6
        self.vertices[i : i + 6] = (
            (px, py + ph, u0, 0.0),
            (px, py, u0, v1),
            (px + pw, py, u1, v1),
            (px, py + ph, u0, 0.0),
            (px + pw, py, u1, v1),
            (px + pw, py + ph, u1, 0.0),
        )
        self.char_count += 1

    def render(self, lines: list[str], x: int, y: int, color=(1.0, 1.0, 1.0)):
        self.char_count = 0
        if not self.font_loaded:
            return
        cursor_y = y
        for line in lines:
            cursor_x = x
            for ch in line:
                if ch not in self.glyphs or self.char_count >= self.max_chars:
                    continue
                self._add_glyph(ch, cursor_x, cursor_y)
                cursor_x += self.glyphs[ch]["advance"]
            cursor_y -= LINE_HEIGHT

        if self.char_count == 0:
            return
        self.vbo.write(self.vertices[: self.char_count * 6].tobytes())
        self.prog["textColor"].value = color
        self.atlas.use(location=0)
        self.ctx.enable(moderngl.BLEND)
        self.ctx.blend_func = moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA
        self.vao.render(moderngl.TRIANGLES, vertices=self.char_count * 6)
        self.ctx.disable(moderngl.BLEND)

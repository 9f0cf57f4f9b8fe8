from __future__ import annotations
import cv2
import moderngl
import numpy as np

from . import shaders as S
from .config import AppConfig
from .logging import get_logger


def make_tex(ctx, size, comps, dtype="f1"):
    tex = ctx.texture(size, comps, dtype=dtype)
    tex.filter = (moderngl.LINEAR, moderngl.LINEAR)
    tex.repeat_x = False
    tex.repeat_y = False
    return tex


def fullscreen_quad(ctx):
    v = np.array([-1, -1, 1, -1, -1, 1, 1, 1], dtype="f4")
    return ctx.buffer(v.tobytes())


class ShadowDisplay:
    """
    GPU side of a session: the display image, its height map and the shadow
    alpha plane, combined in one fullscreen pass.

    Rasters arrive top-left origin and are flipped vertically for GL.
    """

    def __init__(self, ctx: moderngl.Context, cfg: AppConfig):
        self.ctx = ctx
        self.cfg = cfg
        self.logger = get_logger(__name__)

        self.prog_show = ctx.program(vertex_shader=S.VS, fragment_shader=S.FS_SHOW)
        self.prog_empty = ctx.program(vertex_shader=S.VS, fragment_shader=S.FS_EMPTY)
        self.vbo = fullscreen_quad(ctx)
        self.vao_show = ctx.simple_vertex_array(self.prog_show, self.vbo, "in_vert")
        self.vao_empty = ctx.simple_vertex_array(self.prog_empty, self.vbo, "in_vert")

        self.display_tex = None
        self.height_tex = None
        self.shadow_tex = None
        self.size = None

    @property
    def ready(self) -> bool:
        return self.display_tex is not None

    def upload_images(self, display: np.ndarray, height_image: np.ndarray):
        h, w = display.shape[:2]
        self.size = (w, h)
        self.display_tex = make_tex(self.ctx, (w, h), 3)
        self.height_tex = make_tex(self.ctx, (w, h), 3)
        self.shadow_tex = make_tex(self.ctx, (w, h), 1, dtype="f4")
        self.display_tex.write(np.ascontiguousarray(cv2.flip(display, 0)).tobytes())
        self.height_tex.write(
            np.ascontiguousarray(cv2.flip(height_image, 0)).tobytes()
        )
        self.upload_shadow(np.zeros((h, w), dtype=np.float32))
        self.logger.info(f"Uploaded display textures: {w}x{h}")

    def upload_shadow(self, alpha: np.ndarray):
        if self.shadow_tex is None:
            return
        flipped = cv2.flip(alpha.astype(np.float32), 0)
        self.shadow_tex.write(np.ascontiguousarray(flipped).tobytes())

    def render(self, image_blend: float = 0.0):
        self.ctx.viewport = (0, 0, self.cfg.width, self.cfg.height)
        if not self.ready:
            self.vao_empty.render(moderngl.TRIANGLE_STRIP)
            return
        self.display_tex.use(location=0)
        self.height_tex.use(location=1)
        self.shadow_tex.use(location=2)
        self.prog_show["display"].value = 0
        self.prog_show["heightmap"].value = 1
        self.prog_show["shadow"].value = 2
        self.prog_show["image_blend"].value = float(max(0.0, min(1.0, image_blend)))
        self.vao_show.render(moderngl.TRIANGLE_STRIP)

import numpy as np

from shadowhaptics import shaders as S
from shadowhaptics.config import AppConfig
from shadowhaptics.display import ShadowDisplay


def test_shader_strings_exist():
    for name in ["VS", "FS_SHOW", "FS_EMPTY", "VS_HUD", "FS_HUD"]:
        assert hasattr(S, name)
        assert isinstance(getattr(S, name), str)


def test_programs_compile(ctx):
    ctx.program(vertex_shader=S.VS, fragment_shader=S.FS_SHOW)
    ctx.program(vertex_shader=S.VS, fragment_shader=S.FS_EMPTY)
    ctx.program(vertex_shader=S.VS_HUD, fragment_shader=S.FS_HUD)


def test_shadow_darkens_display(ctx):
    cfg = AppConfig(width=4, height=4)
    fbo = ctx.simple_framebuffer((4, 4))
    fbo.use()
    display = ShadowDisplay(ctx, cfg)
    display.upload_images(
        np.full((4, 4, 3), 200, dtype=np.uint8), np.zeros((4, 4, 3), dtype=np.uint8)
    )
    display.render(0.0)
    lit = np.frombuffer(fbo.read(components=3), dtype=np.uint8)
    assert np.all(np.abs(lit.astype(int) - 200) <= 1)

    display.upload_shadow(np.full((4, 4), 0.5, dtype=np.float32))
    display.render(0.0)
    shaded = np.frombuffer(fbo.read(components=3), dtype=np.uint8)
    assert np.all(np.abs(shaded.astype(int) - 100) <= 1)

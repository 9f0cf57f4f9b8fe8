VS = """
#version 330
in vec2 in_vert;
out vec2 uv;
void main(){ gl_Position = vec4(in_vert,0.0,1.0); uv = (in_vert + 1.0)*0.5; }
"""

# display image, optionally blended with the height map, darkened by the shadow
FS_SHOW = """
#version 330
in vec2 uv; out vec4 fragColor;
uniform sampler2D display;
uniform sampler2D heightmap;
uniform sampler2D shadow;
uniform float image_blend;
void main(){
    vec3 base = mix(texture(display, uv).rgb, texture(heightmap, uv).rgb, image_blend);
    float a = texture(shadow, uv).r;
    fragColor = vec4(base * (1.0 - a), 1.0);
}
"""

FS_EMPTY = """
#version 330
in vec2 uv; out vec4 fragColor;
void main(){ fragColor = vec4(0.5, 0.5, 0.5, 1.0); }
"""

VS_HUD = """
#version 330
in vec2 in_vert;
in vec2 in_uv;
out vec2 uv;
void main() {
    gl_Position = vec4(in_vert, 0.0, 1.0);
    uv = in_uv;
}
"""

FS_HUD = """
#version 330
in vec2 uv;
out vec4 fragColor;
uniform sampler2D glyphs;
uniform vec3 textColor;
void main() {
    fragColor = vec4(textColor, texture(glyphs, uv).r);
}
"""

"""
ModernGL renderer for a scene: ground strip, branch capsules, leaf ellipses.

All geometry arrives in canvas pixels with y down; the vertex shaders flip
to GL clip space. Branches and leaves are instanced quads whose fragment
shaders carve out the round caps and the ellipse.
"""

from __future__ import annotations

import logging
import traceback

import moderngl
import numpy as np

from seasonal_tree.scene import Scene

logger = logging.getLogger(__name__)

LEAF_ALPHA = 230 / 255.0
LEAF_ASPECT = 0.6

_PIXEL_TO_NDC = """
    vec4 to_clip(vec2 p) {
        vec2 res = max(u_resolution, vec2(1.0));
        return vec4(p.x / res.x * 2.0 - 1.0, 1.0 - p.y / res.y * 2.0, 0.0, 1.0);
    }
"""

CORNERS = np.array([-1.0, -1.0, 1.0, -1.0, -1.0, 1.0, 1.0, 1.0], dtype="f4")


def _rgb(color, alpha: float = 1.0):
    return (color[0] / 255.0, color[1] / 255.0, color[2] / 255.0, alpha)


def pack_segments(segments, color) -> np.ndarray:
    """Per-instance rows: start(2) end(2) width(1) rgba(4)."""
    data = np.empty((len(segments), 9), dtype="f4")
    if len(segments):
        data[:, :5] = [(s.x1, s.y1, s.x2, s.y2, s.thickness) for s in segments]
    data[:, 5:] = _rgb(color)
    return data


def pack_leaves(leaves) -> np.ndarray:
    """Per-instance rows: center(2) radii(2) angle(1) rgba(4)."""
    data = np.empty((len(leaves), 9), dtype="f4")
    if len(leaves):
        data[:, :8] = [(lf.x, lf.y, lf.radius, lf.radius, lf.angle, *lf.color) for lf in leaves]
        data[:, 3] *= LEAF_ASPECT
        data[:, 5:8] /= 255.0
    data[:, 8] = LEAF_ALPHA
    return data


def ground_strip(polygon, canvas_height: float) -> np.ndarray:
    """Triangle strip between the ground surface and the canvas bottom."""
    surface = np.asarray(polygon[1:-1], dtype="f4").reshape(-1, 2)
    data = np.empty((len(surface) * 2, 2), dtype="f4")
    data[0::2] = surface
    data[1::2, 0] = surface[:, 0]
    data[1::2, 1] = canvas_height
    return data


class SceneRenderer:
    def __init__(self, ctx: moderngl.Context | None = None):
        try:
            self.ctx = ctx or moderngl.create_context()
            if not self.ctx:
                raise RuntimeError("Failed to create OpenGL context")
            logger.info(
                "OpenGL %s on %s",
                self.ctx.version_code,
                self.ctx.info.get("GL_RENDERER", "Unknown"),
            )
            self.corner_vbo = self.ctx.buffer(CORNERS.tobytes())
            self._init_branch_rendering()
            self._init_leaf_rendering()
            self._init_ground_rendering()
        except Exception as e:
            logger.error("Error initializing OpenGL renderer: %s", e)
            traceback.print_exc()
            raise

    def _init_branch_rendering(self):
        self.branch_program = self.ctx.program(
            vertex_shader="""
                #version 330
                uniform vec2 u_resolution;

                in vec2 in_corner;
                in vec2 in_start;
                in vec2 in_end;
                in float in_width;
                in vec4 in_color;

                out vec2 v_local;
                out float v_half_len;
                out float v_radius;
                out vec4 v_color;
            """ + _PIXEL_TO_NDC + """
                void main() {
                    vec2 dir = in_end - in_start;
                    float len = length(dir);
                    vec2 dir_n = len > 0.0001 ? dir / len : vec2(1.0, 0.0);
                    vec2 normal = vec2(-dir_n.y, dir_n.x);
                    float radius = in_width * 0.5;

                    // quad covers the capsule: half length plus a cap on each end
                    vec2 local = vec2(in_corner.x * (len * 0.5 + radius), in_corner.y * radius);
                    vec2 world = (in_start + in_end) * 0.5 + dir_n * local.x + normal * local.y;
                    gl_Position = to_clip(world);
                    v_local = local;
                    v_half_len = len * 0.5;
                    v_radius = radius;
                    v_color = in_color;
                }
            """,
            fragment_shader="""
                #version 330
                in vec2 v_local;
                in float v_half_len;
                in float v_radius;
                in vec4 v_color;
                out vec4 f_color;

                void main() {
                    vec2 q = vec2(max(abs(v_local.x) - v_half_len, 0.0), v_local.y);
                    if (length(q) > v_radius) discard;
                    f_color = v_color;
                }
            """,
        )
        self.branch_instance_vbo = self.ctx.buffer(reserve=9 * 4 * 1024)
        self.branch_vao = self._instanced_vao(
            self.branch_program, self.branch_instance_vbo,
            "2f 2f 1f 4f /i", "in_start", "in_end", "in_width", "in_color",
        )

    def _init_leaf_rendering(self):
        self.leaf_program = self.ctx.program(
            vertex_shader="""
                #version 330
                uniform vec2 u_resolution;

                in vec2 in_corner;
                in vec2 in_center;
                in vec2 in_radii;
                in float in_angle;
                in vec4 in_color;

                out vec2 v_uv;
                out vec4 v_color;
            """ + _PIXEL_TO_NDC + """
                void main() {
                    float c = cos(in_angle);
                    float s = sin(in_angle);
                    vec2 p = in_corner * in_radii;
                    vec2 world = in_center + vec2(p.x * c - p.y * s, p.x * s + p.y * c);
                    gl_Position = to_clip(world);
                    v_uv = in_corner;
                    v_color = in_color;
                }
            """,
            fragment_shader="""
                #version 330
                in vec2 v_uv;
                in vec4 v_color;
                out vec4 f_color;

                void main() {
                    if (dot(v_uv, v_uv) > 1.0) discard;
                    f_color = v_color;
                }
            """,
        )
        self.leaf_instance_vbo = self.ctx.buffer(reserve=9 * 4 * 4096)
        self.leaf_vao = self._instanced_vao(
            self.leaf_program, self.leaf_instance_vbo,
            "2f 2f 1f 4f /i", "in_center", "in_radii", "in_angle", "in_color",
        )

    def _init_ground_rendering(self):
        self.ground_program = self.ctx.program(
            vertex_shader="""
                #version 330
                uniform vec2 u_resolution;
                in vec2 in_position;
            """ + _PIXEL_TO_NDC + """
                void main() {
                    gl_Position = to_clip(in_position);
                }
            """,
            fragment_shader="""
                #version 330
                uniform vec4 u_color;
                out vec4 f_color;

                void main() {
                    f_color = u_color;
                }
            """,
        )
        self.ground_vbo = self.ctx.buffer(reserve=2 * 4 * 1024)
        self.ground_vao = self.ctx.vertex_array(
            self.ground_program, [(self.ground_vbo, "2f", "in_position")]
        )

    def _instanced_vao(self, program, instance_vbo, layout, *attrs):
        return self.ctx.vertex_array(
            program,
            [
                (self.corner_vbo, "2f", "in_corner"),
                (instance_vbo, layout, *attrs),
            ],
        )

    @staticmethod
    def _upload(vbo, data: np.ndarray):
        vbo.orphan(max(data.nbytes, 4))
        vbo.write(data.tobytes())

    def render(self, scene: Scene):
        ctx = self.ctx
        profile = scene.profile
        resolution = (float(scene.width), float(scene.height))

        ctx.clear(*_rgb(profile.background))
        ctx.enable(moderngl.BLEND)
        ctx.blend_func = moderngl.SRC_ALPHA, moderngl.ONE_MINUS_SRC_ALPHA

        strip = ground_strip(scene.ground.polygon(scene.width), scene.height)
        if len(strip):
            r, g, b, a = profile.ground_color
            self._upload(self.ground_vbo, strip)
            self.ground_program["u_resolution"].value = resolution
            self.ground_program["u_color"].value = (r / 255.0, g / 255.0, b / 255.0, a / 255.0)
            self.ground_vao.render(moderngl.TRIANGLE_STRIP, vertices=len(strip))

        committed = scene.growth.committed
        if committed:
            self._upload(self.branch_instance_vbo, pack_segments(committed, profile.branch_color))
            self.branch_program["u_resolution"].value = resolution
            self.branch_vao.render(moderngl.TRIANGLE_STRIP, vertices=4, instances=len(committed))

        leaves = scene.leaves.leaves
        if leaves:
            self._upload(self.leaf_instance_vbo, pack_leaves(leaves))
            self.leaf_program["u_resolution"].value = resolution
            self.leaf_vao.render(moderngl.TRIANGLE_STRIP, vertices=4, instances=len(leaves))

from bdesc.application.render.selector import OUTPUT_TYPES, Renderer, select_renderer
from bdesc.application.render.text import render_text
from bdesc.application.render.yaml_output import render_yaml

__all__ = ["OUTPUT_TYPES", "Renderer", "render_text", "render_yaml", "select_renderer"]

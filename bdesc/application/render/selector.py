"""Maps an --output-type value to a renderer."""

from collections.abc import Callable

from bdesc.application.render.text import render_text
from bdesc.application.render.yaml_output import render_yaml
from bdesc.domain.bundle.model.description import BundleDescription
from bdesc.domain.shared.error import ConfigurationError

Renderer = Callable[[BundleDescription], str]

RENDERERS: dict[str, Renderer] = {
    "text": render_text,
    "yaml": render_yaml,
}

OUTPUT_TYPES: tuple[str, ...] = tuple(RENDERERS)


def validate_output_type(name: str) -> str:
    if name not in RENDERERS:
        raise ConfigurationError(
            f"--output-type can only have the following values [{', '.join(OUTPUT_TYPES)}]"
        )
    return name


def select_renderer(name: str) -> Renderer:
    """Return the renderer for name.

    Raises:
        ConfigurationError: name is not one of OUTPUT_TYPES.
    """
    return RENDERERS[validate_output_type(name)]

"""Indented text rendering of a description tree.

    Bundle SHA: <root digest>

    Images:
      Image: <reference>
      Type: Bundle
      Origin: <origin>
        Images:
          Image: <reference>
          Type: Image
          Origin: <origin>
          Annotations:
            <key>: <value>

At every level nested bundles come first, then images, each in the order the
resolver produced them. A bundle's own children are printed two levels
deeper than the bundle entry: one for the "Images:" label, one for entries.
"""

from bdesc.domain.bundle.model.description import (
    BundleDescription,
    Content,
    ImageDescription,
)
from bdesc.domain.bundle.model.reference import ImageReference
from bdesc.domain.shared.error import InternalConsistencyError, InvalidReferenceError

INDENT = "  "


def render_text(root: BundleDescription) -> str:
    lines = [f"Bundle SHA: {_digest_value(root.reference)}", ""]
    lines.extend(_content_lines(root.content, 0))
    return "\n".join(lines) + "\n"


def require_digest_reference(reference: str) -> ImageReference:
    """Parse a reference the resolver promised is digest-pinned."""
    try:
        ref = ImageReference.parse(reference)
    except InvalidReferenceError:
        ref = None
    if ref is None or not ref.is_digest:
        raise InternalConsistencyError(
            f"Internal consistency: expected {reference} to be a digest reference"
        )
    return ref


def _digest_value(reference: str) -> str:
    return require_digest_reference(reference).digest_value


def _line(level: int, text: str) -> str:
    return f"{INDENT * level}{text}"


def _content_lines(content: Content, level: int) -> list[str]:
    lines = [_line(level, "Images:")]
    for bundle in content.bundles:
        lines.extend(_bundle_lines(bundle, level + 1))
    for image in content.images:
        lines.extend(_image_lines(image, level + 1))
    return lines


def _bundle_lines(bundle: BundleDescription, level: int) -> list[str]:
    require_digest_reference(bundle.reference)
    lines = [
        _line(level, f"Image: {bundle.reference}"),
        _line(level, "Type: Bundle"),
        _line(level, f"Origin: {bundle.origin}"),
    ]
    lines.extend(_content_lines(bundle.content, level + 1))
    return lines


def _image_lines(image: ImageDescription, level: int) -> list[str]:
    require_digest_reference(image.reference)
    lines = [
        _line(level, f"Image: {image.reference}"),
        _line(level, "Type: Image"),
        _line(level, f"Origin: {image.origin}"),
    ]
    if image.annotations:
        lines.append(_line(level, "Annotations:"))
        for key, value in sorted(image.annotations.items()):
            lines.append(_line(level + 1, f"{key}: {value}"))
    return lines

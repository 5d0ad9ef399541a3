"""YAML rendering of a description tree.

Same tree as the text output, as nested mappings. Child order is kept, so
bundles and images are lists rather than maps keyed by digest.
"""

from typing import Any

import yaml

from bdesc.application.render.text import require_digest_reference
from bdesc.domain.bundle.model.description import BundleDescription, ImageDescription


def render_yaml(root: BundleDescription) -> str:
    return yaml.safe_dump(
        _bundle_document(root),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def _bundle_document(bundle: BundleDescription) -> dict[str, Any]:
    require_digest_reference(bundle.reference)
    return {
        "image": bundle.reference,
        "origin": bundle.origin,
        "annotations": dict(bundle.annotations),
        "metadata": bundle.metadata.model_dump(mode="json", exclude_none=True),
        "content": {
            "bundles": [_bundle_document(b) for b in bundle.content.bundles],
            "images": [_image_document(i) for i in bundle.content.images],
        },
    }


def _image_document(image: ImageDescription) -> dict[str, Any]:
    require_digest_reference(image.reference)
    return {
        "image": image.reference,
        "origin": image.origin,
        "annotations": dict(image.annotations),
    }

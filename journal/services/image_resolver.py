"""
Image reference resolution for freshly uploaded article content.

The editor inserts content images as client-local ``blob:`` URLs and uploads
the files in a separate form field. After the files are stored, this module
swaps each placeholder for the permanent URL of the matching upload.

Ordering contract: uploaded URLs are consumed from one queue shared by all
languages. Translations are walked in the fixed order en, fr, ar; inside a
translation, blocks in list order; inside an ``image-group`` block, images in
list order. The client must attach files in exactly that order or images are
silently attributed to the wrong slot.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Mapping, Optional, Sequence

from journal.models.article import (
    LANGUAGE_ORDER,
    ContentBlockType,
    Translation,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    translations: Dict[str, Optional[Translation]]
    consumed: int
    unresolved: int

    @property
    def complete(self) -> bool:
        return self.unresolved == 0


class ImageReferenceResolver:
    """Replace placeholder image URLs with uploaded ones. Performs no I/O."""

    def resolve(
        self,
        translations: Mapping[str, Optional[Translation]],
        uploaded_urls: Sequence[str],
    ) -> ResolutionResult:
        queue: Deque[str] = deque(uploaded_urls)
        resolved: Dict[str, Optional[Translation]] = {}
        consumed = 0
        unresolved = 0

        for lang in LANGUAGE_ORDER:
            if lang not in translations:
                continue
            translation = translations[lang]
            if translation is None:
                resolved[lang] = None
                continue

            translation = translation.model_copy(deep=True)
            for block in translation.content:
                if block.type != ContentBlockType.IMAGE_GROUP:
                    continue
                for image in block.images:
                    if not image.is_placeholder:
                        continue
                    if queue:
                        image.url = queue.popleft()
                        consumed += 1
                    else:
                        unresolved += 1
            resolved[lang] = translation

        if unresolved:
            logger.warning(
                "Image resolution left %d placeholder(s) unresolved after consuming %d upload(s)",
                unresolved, consumed,
            )
        if queue:
            logger.info("%d uploaded content image(s) were not referenced", len(queue))

        return ResolutionResult(translations=resolved, consumed=consumed, unresolved=unresolved)


image_resolver = ImageReferenceResolver()

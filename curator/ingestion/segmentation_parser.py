"""Streaming COCO segmentation parser using ijson.

Always reads in **binary mode** because ijson's ``yajl2_c`` backend
operates on raw bytes.  Uses ``use_float=True`` to avoid ``Decimal``
overhead for coordinate values.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import BinaryIO

import ijson

from curator.models.region import AnnotationRegion
from curator.services.geometry import bounding_box, points_from_segmentation

logger = logging.getLogger(__name__)


class SegmentationParser:
    """Streams ``annotations`` out of a COCO-style segmentation file.

    The polygon is read from ``seg`` (the analysis tool's key) or the
    standard ``segmentation`` key.  ``bbox`` is recomputed from the polygon
    when the file omits it.
    """

    def parse_annotations_streaming(self, f: BinaryIO) -> Iterator[dict]:
        """Yield raw annotation dicts one at a time."""
        yield from ijson.items(f, "annotations.item", use_float=True)

    def iter_regions(
        self,
        f: BinaryIO,
        metrics: dict[int, dict[str, float]] | None = None,
    ) -> Iterator[AnnotationRegion]:
        """Yield regions in file order, joined with *metrics* by id.

        Regions without a metrics row get an empty metrics map (every
        condition then fails to match them).
        """
        metrics = metrics or {}
        for ann in self.parse_annotations_streaming(f):
            if "id" not in ann:
                logger.warning("Skipping annotation without id")
                continue
            region_id = int(ann["id"])
            points = points_from_segmentation(ann.get("seg") or ann.get("segmentation") or [])

            bbox = ann.get("bbox")
            if not bbox or len(bbox) < 4:
                bbox = bounding_box(points)

            category_id = ann.get("category_id")
            yield AnnotationRegion(
                id=region_id,
                bbox=tuple(float(v) for v in bbox[:4]),
                points=points,
                metrics=metrics.get(region_id, {}),
                category_id=int(category_id) if category_id is not None else None,
            )

"""Layouts that are not drawn yet; they log and hand back a marked stub."""
import logging
from typing import Any, Dict

logger = logging.getLogger("PolyViz.layouts")


def placeholder_layout(visualization_type: str, data: Any) -> Dict[str, Any]:
    """Stub geometry for a layout without a renderer."""
    logger.warning("%s layout is not implemented yet; rendering a placeholder", visualization_type)
    return {"type": visualization_type, "placeholder": True, "data": data}

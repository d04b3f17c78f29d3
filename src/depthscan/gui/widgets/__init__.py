from .depth_preview import DepthPreviewWidget

__all__ = [
    "DepthPreviewWidget",
]

"""
DocuFlow - Sign-Off Document Rendering

This module provides isolated, testable rendering capabilities:
- Decoder: encoded-image fields to raw bytes
- Normalizer: raw submission to RenderModel
- Vision: image orientation, flattening and downscaling
- Layout: cursor-driven PDF placement with automatic page breaks
- Composer: the sign-off document's sections

All components are independent of the HTTP and mail infrastructure.
"""

__all__ = ['decoder', 'normalizer', 'vision', 'layout', 'composer']

"""
Inference backends for face_kit.

Backends are kept in a separate module so core functionality (encode/decode/NMS)
stays lightweight and can be used without installing inference runtimes.
"""

from __future__ import annotations

__all__ = []

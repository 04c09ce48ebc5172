"""
Content fingerprinting used for equality checks between snapshots.
"""

from __future__ import annotations

import hashlib


class ContentHasher:
    @staticmethod
    def fingerprint(content: str) -> str:
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

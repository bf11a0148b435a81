from __future__ import annotations


class PassthroughTitleGenerator:
    """Used when no title service is configured: keeps the original title."""

    def generate(self, fragment: str, original_title: str) -> str:
        return original_title
